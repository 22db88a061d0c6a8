"""
Code generation utilities

Provides helpers for generating Rust source and the naming scheme shared by
every emitter.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, TYPE_CHECKING
import re
import textwrap

if TYPE_CHECKING:
    from .ir import ParamInfo


class CodeGen:
    """Rust source builder tracking the current indentation depth"""

    INDENT = '    '

    def __init__(self):
        self._lines: list[str] = []
        self._depth = 0

    def line(self, text: str = ''):
        """Append one line at the current depth; empty text stays empty"""
        self._lines.append(self.INDENT * self._depth + text if text else '')

    def text(self, block: str):
        """Append a verbatim multi-line body, re-indented to the current depth"""
        for text in textwrap.dedent(block).strip('\n').splitlines():
            self.line(text.rstrip())

    def raw(self, text: str):
        """Append text as-is, ignoring the depth"""
        self._lines.append(text)

    def indent(self):
        self._depth += 1

    def dedent(self):
        self._depth = max(self._depth - 1, 0)

    @contextmanager
    def block(self, header: str, footer: str = '}') -> Iterator['CodeGen']:
        """Emit header, indent the body, then close with footer

        Example:
            with gen.block('match x {', '},'): ...
        """
        self.line(header)
        self.indent()
        yield self
        self.dedent()
        self.line(footer)

    def output(self) -> str:
        return '\n'.join(self._lines)


@dataclass(frozen=True)
class GeneratedArtifact:
    """One emitted item: its symbol name and Rust source"""
    symbol: str
    source: str
    kind: str = 'wrapper'  # wrapper, record, item, impl, pymodule

    @property
    def claims_symbol(self) -> bool:
        """Impl blocks may repeat per type; every other item owns its name"""
        return self.kind != 'impl'


_IDENT_RE = re.compile(r'^[A-Za-z_]\w*$')


def wrapper_name(owner: str, member: str) -> str:
    """Exported symbol for an owner member

    Examples:
        Point, new -> Point_new
        Counter, get_value -> Counter_get_value
    """
    return f'{owner}_{member}'


def free_name(owner: str) -> str:
    return wrapper_name(owner, 'free')


def getter_name(owner: str, field: str) -> str:
    return wrapper_name(owner, f'get_{field}')


def setter_name(owner: str, field: str) -> str:
    return wrapper_name(owner, f'set_{field}')


def result_record_name(base: str) -> str:
    """C-compatible Result record, e.g. divide -> CResult_divide"""
    return f'CResult_{base}'


def option_record_name(base: str) -> str:
    """C-compatible Option record, e.g. safe_sqrt -> COption_safe_sqrt"""
    return f'COption_{base}'


def inner_name(func_name: str) -> str:
    """Hidden function holding the original body of a reshaped export"""
    return f'{func_name}_inner'


def param_ident(param: 'ParamInfo', index: int) -> str:
    """Identifier usable as a wrapper argument

    Examples:
        'x' -> x
        'mut x' -> x
        '_' -> arg0
    """
    name = param.name.strip()
    if name.startswith('mut '):
        name = name[4:].strip()
    if _IDENT_RE.match(name) and name != '_':
        return name
    return f'arg{index}'


def param_idents(params: list['ParamInfo'], reserved: Iterable[str] = ()) -> list[str]:
    """Distinct wrapper argument names, avoiding the wrapper's own locals

    Example:
        (ptr, n) with reserved {'ptr'} -> ['arg0', 'n']
        (ptr, arg0) with reserved {'ptr'} -> ['arg0', 'arg1']
    """
    used = set(reserved)
    idents = []
    for i, param in enumerate(params):
        name = param_ident(param, i)
        if name in used:
            name = f'arg{i}'
        while name in used:
            name += '_'
        used.add(name)
        idents.append(name)
    return idents


def render_params(params: list['ParamInfo'], receiver: Optional[str] = None) -> str:
    """Render a parameter list as written in the declaration"""
    parts = [receiver] if receiver else []
    parts.extend(f'{p.name}: {p.type}' for p in params)
    return ', '.join(parts)


def render_return(ret: Optional[str]) -> str:
    """Render ' -> T', or nothing for unit"""
    if not ret or ret.replace(' ', '') == '()':
        return ''
    return f' -> {ret}'


def render_signature(name: str, params: str, ret: Optional[str], vis: str = '',
                     is_unsafe: bool = False, abi: Optional[str] = None) -> str:
    """Render a fn signature line without the opening brace

    Example:
        render_signature('add', 'a: i32, b: i32', 'i32', vis='pub', abi='C')
        -> 'pub extern "C" fn add(a: i32, b: i32) -> i32'
    """
    head = []
    if vis:
        head.append(vis)
    if is_unsafe:
        head.append('unsafe')
    if abi:
        head.append(f'extern "{abi}"')
    head.append(f'fn {name}({params}){render_return(ret)}')
    return ' '.join(head)


def is_marker_attr(attr: str, attr_name: str) -> bool:
    """Check if attribute text is the generator's own marker, e.g. #[ffi_export]"""
    return attr.replace(' ', '') in (f'#[{attr_name}]', f'#[{attr_name}()]')


def emit_attrs(attrs: list[str], gen: CodeGen, attr_name: str):
    """Emit declaration attributes, dropping the generator marker"""
    for attr in attrs:
        if not is_marker_attr(attr, attr_name):
            gen.line(attr)


def emit_fn(gen: CodeGen, signature: str, body: str):
    """Emit a fn item with a verbatim body"""
    gen.line(f'{signature} {{')
    gen.indent()
    gen.text(body)
    gen.dedent()
    gen.line('}')

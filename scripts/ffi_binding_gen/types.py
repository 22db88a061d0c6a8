"""
Type compatibility module

Parses Rust type strings and classifies them by how they may cross a C-style
foreign boundary.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union
import re

from .errors import FfiTypeError


PRIMITIVE_TYPES = frozenset([
    'i8', 'i16', 'i32', 'i64', 'i128', 'isize',
    'u8', 'u16', 'u32', 'u64', 'u128', 'usize',
    'f32', 'f64',
    'bool', 'char',
])

# Heap-owned types accepted as struct fields only; getters return a clone
CONTAINER_ARITY = {
    'String': 0,
    'Vec': 1,
}

_TOKEN_RE = re.compile(r"::|->|'[A-Za-z_]\w*|[A-Za-z_]\w*|\d+|\S")
_IDENT_RE = re.compile(r'^[A-Za-z_]\w*$')

_KEYWORDS = frozenset(['dyn', 'impl', 'fn', 'unsafe', 'extern', 'mut', 'const', 'as'])


@dataclass(frozen=True)
class RustType:
    """Parsed Rust type expression"""
    kind: str  # path, tuple, ptr, ref, array, slice, lifetime, binding, never, other
    name: str = ''
    path: tuple[str, ...] = ()
    args: tuple['RustType', ...] = ()
    mutable: bool = False
    text: str = ''

    @property
    def type_args(self) -> tuple['RustType', ...]:
        """Generic arguments that are types (lifetimes excluded)"""
        return tuple(a for a in self.args if a.kind != 'lifetime')

    @property
    def is_unit(self) -> bool:
        return self.kind == 'tuple' and not self.args


class _TypeParser:
    """Recursive-descent parser for the Rust type grammar"""

    def __init__(self, text: str):
        self.text = text
        self.tokens = [(m.group(), m.start(), m.end()) for m in _TOKEN_RE.finditer(text)]
        self.pos = 0

    def peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx][0]
        return ''

    def next(self) -> str:
        if self.pos >= len(self.tokens):
            raise FfiTypeError(f'incomplete type `{self.text}`')
        tok = self.tokens[self.pos][0]
        self.pos += 1
        return tok

    def expect(self, tok: str):
        got = self.next()
        if got != tok:
            raise FfiTypeError(f'expected `{tok}` but found `{got}` in type `{self.text}`')

    def parse(self) -> RustType:
        ty = self.parse_type()
        if self.pos != len(self.tokens):
            raise FfiTypeError(f'unexpected `{self.peek()}` in type `{self.text}`')
        return ty

    def parse_type(self) -> RustType:
        if self.pos >= len(self.tokens):
            raise FfiTypeError(f'incomplete type `{self.text}`')
        start = self.tokens[self.pos][1]
        ty = self._parse_inner()
        end = self.tokens[self.pos - 1][2]
        return replace(ty, text=self.text[start:end])

    def _parse_inner(self) -> RustType:
        tok = self.next()

        if tok == '(':
            elems = []
            trailing_comma = False
            while self.peek() != ')':
                elems.append(self.parse_type())
                trailing_comma = False
                if self.peek() == ',':
                    self.next()
                    trailing_comma = True
                elif self.peek() != ')':
                    raise FfiTypeError(f'malformed tuple type `{self.text}`')
            self.next()
            if len(elems) == 1 and not trailing_comma:
                return elems[0]
            return RustType('tuple', args=tuple(elems))

        elif tok == '!':
            return RustType('never')

        elif tok == '*':
            qualifier = self.next()
            if qualifier not in ('const', 'mut'):
                raise FfiTypeError(f'raw pointer needs `const` or `mut` in type `{self.text}`')
            return RustType('ptr', args=(self.parse_type(),), mutable=qualifier == 'mut')

        elif tok == '&':
            if self.peek().startswith("'"):
                self.next()
            mutable = False
            if self.peek() == 'mut':
                self.next()
                mutable = True
            return RustType('ref', args=(self.parse_type(),), mutable=mutable)

        elif tok == '[':
            inner = self.parse_type()
            kind = 'slice'
            if self.peek() == ';':
                self.next()
                self._skip_until_delimiter()
                kind = 'array'
            self.expect(']')
            return RustType(kind, args=(inner,))

        elif tok in ('dyn', 'impl', 'fn', 'unsafe', 'extern'):
            # trait objects and fn pointers are never exportable; only consume them
            self._skip_until_delimiter()
            return RustType('other')

        elif tok == '<':
            # qualified path such as <T as Trait>::Output
            self._skip_until_delimiter(depth=1)
            return RustType('other')

        return self._parse_path(tok)

    def _parse_path(self, tok: str) -> RustType:
        if tok == '::':
            tok = self.next()
        segments = []
        seg_args = []
        while True:
            if not _IDENT_RE.match(tok) or tok in _KEYWORDS:
                raise FfiTypeError(f'unexpected `{tok}` in type `{self.text}`')
            segments.append(tok)
            args: tuple[RustType, ...] = ()
            if self.peek() == '<':
                args = self._parse_generic_args()
            elif self.peek() == '::' and self.peek(1) == '<':
                self.next()
                args = self._parse_generic_args()
            seg_args.append(args)
            if self.peek() == '::':
                self.next()
                tok = self.next()
                continue
            break

        if any(seg_args[:-1]):
            return RustType('other', name=segments[-1], path=tuple(segments))
        return RustType('path', name=segments[-1], path=tuple(segments), args=seg_args[-1])

    def _parse_generic_args(self) -> tuple[RustType, ...]:
        self.expect('<')
        args = []
        while self.peek() != '>':
            if not self.peek():
                raise FfiTypeError(f'unclosed generic arguments in type `{self.text}`')
            if self.peek().startswith("'"):
                lifetime = self.next()
                args.append(RustType('lifetime', text=lifetime))
            elif _IDENT_RE.match(self.peek()) and self.peek(1) == '=':
                self.next()
                self.next()
                args.append(RustType('binding', args=(self.parse_type(),)))
            else:
                args.append(self.parse_type())
            if self.peek() == ',':
                self.next()
            elif self.peek() != '>':
                raise FfiTypeError(f'malformed generic arguments in type `{self.text}`')
        self.expect('>')
        return tuple(args)

    def _skip_until_delimiter(self, depth: int = 0):
        """Consume tokens up to the next unnested `,` `>` `)` `]` `;`"""
        openers = {'<': '>', '(': ')', '[': ']'}
        while self.pos < len(self.tokens):
            tok = self.peek()
            if depth == 0 and tok in (',', '>', ')', ']', ';', '='):
                return
            if tok in openers:
                depth += 1
            elif tok in ('>', ')', ']'):
                depth -= 1
            self.next()


def parse_type(text: str) -> RustType:
    """Parse a Rust type string

    Examples:
        'Result<f64, i32>' -> path Result with two type args
        '*mut Point'       -> ptr to path Point
        '()'               -> unit tuple
    """
    if not text or not text.strip():
        return RustType('tuple', text='()')
    return _TypeParser(text.strip()).parse()


class TypeKind(Enum):
    PRIMITIVE = 'primitive'
    OPAQUE_POINTER = 'opaque_pointer'
    UNIT = 'unit'
    ERROR_SHAPE = 'error_shape'
    OPTIONAL_SHAPE = 'optional_shape'
    CONTAINER = 'container'
    UNSUPPORTED = 'unsupported'


PLAIN_KINDS = frozenset([TypeKind.PRIMITIVE, TypeKind.UNIT, TypeKind.OPAQUE_POINTER])
PAYLOAD_KINDS = frozenset([TypeKind.PRIMITIVE, TypeKind.UNIT])
SHAPE_KINDS = frozenset([TypeKind.ERROR_SHAPE, TypeKind.OPTIONAL_SHAPE])
FIELD_KINDS = PLAIN_KINDS | {TypeKind.CONTAINER}


@dataclass(frozen=True)
class TypeDescriptor:
    """Classification of one type occurrence"""
    kind: TypeKind
    rust: str
    ok: Optional['TypeDescriptor'] = None
    err: Optional['TypeDescriptor'] = None
    inner: Optional['TypeDescriptor'] = None

    @property
    def is_plain(self) -> bool:
        """Crosses the boundary unchanged"""
        return self.kind in PLAIN_KINDS

    @property
    def is_shape(self) -> bool:
        return self.kind in SHAPE_KINDS

    @property
    def is_unit(self) -> bool:
        return self.kind == TypeKind.UNIT


TypeLike = Union[str, RustType]


def _as_rust_type(ty: TypeLike) -> RustType:
    return parse_type(ty) if isinstance(ty, str) else ty


def classify(ty: TypeLike) -> TypeDescriptor:
    """Classify a type for the C boundary

    Result/Option payloads must themselves be primitive or unit; anything
    else raises FfiTypeError, rejecting the whole declaration.
    """
    ty = _as_rust_type(ty)
    text = ty.text or '()'

    if ty.is_unit:
        return TypeDescriptor(TypeKind.UNIT, '()')

    if ty.kind == 'ptr':
        return TypeDescriptor(TypeKind.OPAQUE_POINTER, text)

    if ty.kind != 'path':
        return TypeDescriptor(TypeKind.UNSUPPORTED, text)

    type_args = ty.type_args
    if len(type_args) != len(ty.args):
        # lifetime arguments imply a borrow
        return TypeDescriptor(TypeKind.UNSUPPORTED, text)

    if ty.name in PRIMITIVE_TYPES and not type_args:
        return TypeDescriptor(TypeKind.PRIMITIVE, text)

    if CONTAINER_ARITY.get(ty.name) == len(type_args):
        return TypeDescriptor(TypeKind.CONTAINER, text)

    if ty.name == 'Result' and len(type_args) == 2:
        ok = _classify_payload(type_args[0], 'Result')
        err = _classify_payload(type_args[1], 'Result')
        return TypeDescriptor(TypeKind.ERROR_SHAPE, text, ok=ok, err=err)

    if ty.name == 'Option' and len(type_args) == 1:
        inner = _classify_payload(type_args[0], 'Option')
        return TypeDescriptor(TypeKind.OPTIONAL_SHAPE, text, inner=inner)

    return TypeDescriptor(TypeKind.UNSUPPORTED, text)


def _classify_payload(ty: RustType, shape: str) -> TypeDescriptor:
    if ty.kind == 'binding':
        raise FfiTypeError(f'unexpected associated type binding in `{shape}<...>`')
    desc = classify(ty)
    if desc.kind not in PAYLOAD_KINDS:
        raise FfiTypeError(
            f'`{shape}` payload `{ty.text}` is not FFI-compatible; '
            f'only primitive or unit payloads can be zero-filled'
        )
    return desc


def check_param(name: str, ty: TypeLike) -> TypeDescriptor:
    """Classify a parameter type, rejecting anything that is not plain"""
    desc = classify(ty)
    if not desc.is_plain:
        raise FfiTypeError(f'parameter `{name}` has type `{desc.rust}` which cannot cross the C boundary')
    return desc


def check_return(ty: TypeLike) -> TypeDescriptor:
    """Classify a return type; Result/Option shapes are accepted"""
    desc = classify(ty)
    if not (desc.is_plain or desc.is_shape):
        raise FfiTypeError(f'return type `{desc.rust}` cannot cross the C boundary')
    return desc


def field_accessible(desc: TypeDescriptor) -> bool:
    """Check if a field of this classification gets getter/setter wrappers"""
    return desc.kind in FIELD_KINDS


def is_owner_type(ty: TypeLike, owner: str) -> bool:
    """Check if type is `Self` or the owner struct, by last path segment"""
    try:
        ty = _as_rust_type(ty)
    except FfiTypeError:
        return False
    return ty.kind == 'path' and not ty.args and ty.name in ('Self', owner)

"""
Method binding generation module

Classifies impl-block methods as constructors, static functions or instance
methods and generates their extern "C" wrappers.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, TYPE_CHECKING
import re

from .classify import resolve_owner
from .codegen import (
    CodeGen, GeneratedArtifact,
    emit_attrs, emit_fn, is_marker_attr,
    render_params, render_signature, wrapper_name,
)
from .errors import FfiTypeError
from .func import call_args, gen_shape_record, gen_shape_match, shape_record_name, wrapper_params
from .types import TypeDescriptor, check_param, check_return, is_owner_type

if TYPE_CHECKING:
    from .ir import ImplInfo, MethodInfo

_SHARED_RE = re.compile(r"^&\s*('\w+\s+)?self$|^self\s*:\s*&\s*('\w+\s+)?Self$")
_EXCLUSIVE_RE = re.compile(r"^&\s*('\w+\s+)?mut\s+self$|^self\s*:\s*&\s*('\w+\s+)?mut\s+Self$")

# identifiers the method wrapper binds itself; user parameters are renamed around them
WRAPPER_LOCALS = frozenset(['ptr', 'self_ref', 'obj'])


class ReceiverKind(Enum):
    NONE = 'none'
    SHARED = 'shared'
    EXCLUSIVE = 'exclusive'


class MethodKind(Enum):
    CONSTRUCTOR = 'constructor'
    STATIC = 'static'
    INSTANCE = 'instance'


class ReturnHandling(Enum):
    BOX = 'box'            # heap-allocate, return *mut Owner
    REJECT = 'reject'      # cannot be exported
    BY_SHAPE = 'by_shape'  # same rules as a free function return


# How a method's result crosses the boundary, keyed by
# (classification, return type is the owner type).
#
# Any owner-typed value is boxed so the foreign side releases every instance
# through the one Owner_free wrapper. A constructor is recognized by name
# alone, so it may declare a non-owner return; that cannot be boxed as the
# owner and is rejected. (STATIC, True) cannot come out of classify_method
# because such a method is a constructor; it is listed to keep the table total.
RETURN_RULES = {
    (MethodKind.CONSTRUCTOR, True): ReturnHandling.BOX,
    (MethodKind.CONSTRUCTOR, False): ReturnHandling.REJECT,
    (MethodKind.STATIC, True): ReturnHandling.BOX,
    (MethodKind.STATIC, False): ReturnHandling.BY_SHAPE,
    (MethodKind.INSTANCE, True): ReturnHandling.BOX,
    (MethodKind.INSTANCE, False): ReturnHandling.BY_SHAPE,
}


def receiver_kind(method: 'MethodInfo') -> ReceiverKind:
    """Get the receiver kind of a method"""
    if method.receiver is None:
        return ReceiverKind.NONE
    text = ' '.join(method.receiver.split())
    if _SHARED_RE.match(text):
        return ReceiverKind.SHARED
    if _EXCLUSIVE_RE.match(text):
        return ReceiverKind.EXCLUSIVE
    raise FfiTypeError(
        f'method `{method.name}` takes `{method.receiver}`; '
        f'only &self and &mut self receivers can cross the C boundary')


def returns_owner(method: 'MethodInfo', owner: str) -> bool:
    return is_owner_type(method.return_type, owner)


def classify_method(method: 'MethodInfo', owner: str) -> MethodKind:
    """Classify method as constructor, static function or instance method

    A receiver always wins: `fn new(&mut self) -> Self` is an instance
    method, which keeps builder-style chained setters from being treated
    as constructors.
    """
    receiver = receiver_kind(method)
    if receiver == ReceiverKind.NONE and (method.name == 'new' or returns_owner(method, owner)):
        return MethodKind.CONSTRUCTOR
    if receiver != ReceiverKind.NONE:
        return MethodKind.INSTANCE
    return MethodKind.STATIC


@dataclass(frozen=True)
class MethodPlan:
    """Everything needed to wrap one method"""
    method: 'MethodInfo'
    owner: str
    owner_path: str
    kind: MethodKind
    receiver: ReceiverKind
    handling: ReturnHandling
    ret: Optional[TypeDescriptor] = None  # None when the result is boxed

    @property
    def symbol(self) -> str:
        return wrapper_name(self.owner, self.method.name)


def plan_method(method: 'MethodInfo', owner: str, owner_path: Optional[str] = None) -> MethodPlan:
    """Classify and validate a method"""
    kind = classify_method(method, owner)
    receiver = receiver_kind(method)
    for param in method.params:
        check_param(param.name, param.type)

    handling = RETURN_RULES[(kind, returns_owner(method, owner))]
    if handling == ReturnHandling.REJECT:
        raise FfiTypeError(
            f'constructor `{method.name}` must return `Self` or `{owner}`, '
            f'not `{method.return_type}`')

    ret = check_return(method.return_type) if handling == ReturnHandling.BY_SHAPE else None
    return MethodPlan(
        method=method,
        owner=owner,
        owner_path=owner_path or owner,
        kind=kind,
        receiver=receiver,
        handling=handling,
        ret=ret,
    )


def emit_method(method: 'MethodInfo', gen: CodeGen, attr_name: str,
                extra_attrs: tuple[str, ...] = ()):
    """Emit a method definition unchanged, minus the marker attribute"""
    emit_attrs(method.attrs, gen, attr_name)
    for attr in extra_attrs:
        gen.line(attr)
    signature = render_signature(method.name, render_params(method.params, method.receiver),
                                 method.ret, vis=method.vis, is_unsafe=method.is_unsafe)
    emit_fn(gen, signature, method.body)


class MethodGenerator:
    """Generates method wrapper bindings"""

    def __init__(self, attr_name: str = 'ffi_export', no_mangle: str = '#[no_mangle]',
                 require_marker: bool = False):
        self.attr_name = attr_name
        self.no_mangle = no_mangle
        self.require_marker = require_marker

    def exported_methods(self, impl: 'ImplInfo') -> list['MethodInfo']:
        """Methods that get wrappers"""
        if not self.require_marker:
            return list(impl.methods)
        return [m for m in impl.methods
                if any(is_marker_attr(a, self.attr_name) for a in m.attrs)]

    def plan(self, impl: 'ImplInfo') -> list[MethodPlan]:
        """Classify and validate every exported method"""
        owner = resolve_owner(impl, self.attr_name)
        return [plan_method(m, owner, impl.self_ty.strip()) for m in self.exported_methods(impl)]

    def generate(self, impl: 'ImplInfo') -> list[GeneratedArtifact]:
        """Generate the impl block and one wrapper per exported method"""
        plans = self.plan(impl)
        artifacts = [self.gen_impl(impl)]
        for plan in plans:
            artifacts.extend(self._gen_wrapper(plan))
        return artifacts

    def gen_impl(self, impl: 'ImplInfo') -> GeneratedArtifact:
        """Re-emit the impl block with the original methods"""
        gen = CodeGen()
        emit_attrs(impl.attrs, gen, self.attr_name)
        with gen.block(f'impl {impl.self_ty} {{'):
            for i, method in enumerate(impl.methods):
                if i:
                    gen.line()
                emit_method(method, gen, self.attr_name)
        return GeneratedArtifact(impl.name, gen.output(), kind='impl')

    def _gen_wrapper(self, plan: MethodPlan) -> list[GeneratedArtifact]:
        """Generate the extern "C" wrapper for one method"""
        method = plan.method
        name = plan.symbol
        owner = plan.owner_path
        artifacts = []

        args = []
        if plan.receiver == ReceiverKind.SHARED:
            args.append(f'ptr: *const {owner}')
        elif plan.receiver == ReceiverKind.EXCLUSIVE:
            args.append(f'ptr: *mut {owner}')
        args.extend(wrapper_params(method.params, WRAPPER_LOCALS))

        if plan.receiver == ReceiverKind.NONE:
            call = f'{owner}::{method.name}({call_args(method.params, WRAPPER_LOCALS)})'
        else:
            call = f'self_ref.{method.name}({call_args(method.params, WRAPPER_LOCALS)})'

        record = None
        if plan.handling == ReturnHandling.BOX:
            ret = f'*mut {owner}'
        elif plan.ret.is_shape:
            record = shape_record_name(name, plan.ret)
            record_gen = CodeGen()
            gen_shape_record(record, plan.ret, record_gen)
            artifacts.append(GeneratedArtifact(record, record_gen.output(), kind='record'))
            ret = record
        else:
            ret = method.ret

        gen = CodeGen()
        gen.line(self.no_mangle)
        gen.line('#[allow(non_snake_case)]')
        signature = render_signature(name, ', '.join(args), ret, vis='pub', abi='C')
        with gen.block(f'{signature} {{'):
            if plan.receiver == ReceiverKind.SHARED:
                gen.line('let self_ref = unsafe { &*ptr };')
            elif plan.receiver == ReceiverKind.EXCLUSIVE:
                gen.line('let self_ref = unsafe { &mut *ptr };')

            if plan.handling == ReturnHandling.BOX:
                gen.line(f'let obj = {call};')
                gen.line('Box::into_raw(Box::new(obj))')
            elif record:
                gen_shape_match(call, record, plan.ret, gen)
            elif plan.ret.is_unit:
                gen.line(f'{call};')
            else:
                gen.line(call)

        artifacts.append(GeneratedArtifact(name, gen.output()))
        return artifacts

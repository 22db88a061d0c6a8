"""
Declaration classification module

Decides which exportable shape a declaration has and rejects the rest.
"""

from enum import Enum
from typing import Optional

from .errors import StructuralError, SafetyError, FfiTypeError
from .ir import Decl, FuncInfo, StructInfo, ImplInfo, MethodInfo
from .types import parse_type


STRUCTURAL_MESSAGE = 'applies only to functions, data records, or method collections'


class DeclKind(Enum):
    FUNCTION = 'fn'
    DATA_RECORD = 'struct'
    METHOD_COLLECTION = 'impl'


# Checked in order; the first match wins
DECL_SHAPES = [
    (DeclKind.FUNCTION, FuncInfo),
    (DeclKind.DATA_RECORD, StructInfo),
    (DeclKind.METHOD_COLLECTION, ImplInfo),
]


def decl_name(decl: Decl) -> str:
    """Display name of any declaration"""
    return getattr(decl, 'name', '') or '<anonymous>'


def classify_declaration(decl: Decl, attr_name: str = 'ffi_export') -> DeclKind:
    """Classify declaration as function, data record or method collection"""
    for kind, shape in DECL_SHAPES:
        if isinstance(decl, shape):
            return kind
    raise StructuralError(f'#[{attr_name}] {STRUCTURAL_MESSAGE}', decl_name(decl))


def resolve_owner(impl: ImplInfo, attr_name: str = 'ffi_export') -> str:
    """Get the owner struct name of an impl block

    The target must be a plain path such as `Point` or `crate::geo::Point`.
    """
    try:
        ty = parse_type(impl.self_ty)
    except FfiTypeError:
        ty = None
    if ty is None or ty.kind != 'path' or ty.args or ty.name == 'Self':
        raise StructuralError(
            f'#[{attr_name}] on impl block requires a simple type path, got `{impl.self_ty}`',
            impl.name)
    return ty.name


def check_safety(decl: Decl, attr_name: str = 'ffi_export',
                 methods: Optional[list[MethodInfo]] = None):
    """Reject unsafe functions and exported unsafe methods

    `methods` narrows the check to the methods that will get wrappers;
    all methods of an impl block are checked by default.
    """
    if isinstance(decl, FuncInfo) and decl.is_unsafe:
        raise SafetyError(
            f'#[{attr_name}] cannot be applied to unsafe functions directly; '
            f'an extern "C" export would hide the caller\'s safety obligation',
            decl.name)
    if isinstance(decl, ImplInfo):
        for method in decl.methods if methods is None else methods:
            if method.is_unsafe:
                raise SafetyError(
                    f'#[{attr_name}] cannot export unsafe method `{method.name}`',
                    decl.name)

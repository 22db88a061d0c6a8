"""
ffi_binding_gen - attribute-driven FFI binding generation for Rust

This framework turns annotated Rust declarations (functions, structs and
impl blocks, read from a JSON IR) into extern "C" wrappers with a stable
layout, or into PyO3 bindings for Python from the same declarations.
"""

from .ir import IR, FuncInfo, StructInfo, FieldInfo, ImplInfo, MethodInfo, ParamInfo, OtherDecl
from .errors import BindgenError, StructuralError, FfiTypeError, SafetyError, NameCollisionError
from .codegen import CodeGen, GeneratedArtifact
from .classify import DeclKind, classify_declaration
from .method import MethodKind, ReceiverKind, ReturnHandling, RETURN_RULES, classify_method
from .symbols import SymbolRegistry
from .func import FuncGenerator
from .struct import StructGenerator
from .method import MethodGenerator
from .pyo3 import PyO3Generator
from .generator import Generator, BindingConfig, Target, Expansion
# Imported last: the `classify` submodule would otherwise shadow the function.
from .types import TypeKind, TypeDescriptor, RustType, parse_type, classify

__all__ = [
    'IR', 'FuncInfo', 'StructInfo', 'FieldInfo', 'ImplInfo', 'MethodInfo', 'ParamInfo', 'OtherDecl',
    'BindgenError', 'StructuralError', 'FfiTypeError', 'SafetyError', 'NameCollisionError',
    'TypeKind', 'TypeDescriptor', 'RustType', 'parse_type', 'classify',
    'CodeGen', 'GeneratedArtifact',
    'DeclKind', 'classify_declaration',
    'MethodKind', 'ReceiverKind', 'ReturnHandling', 'RETURN_RULES', 'classify_method',
    'SymbolRegistry',
    'FuncGenerator',
    'StructGenerator',
    'MethodGenerator',
    'PyO3Generator',
    'Generator', 'BindingConfig', 'Target', 'Expansion',
]

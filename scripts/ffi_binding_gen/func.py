"""
Function binding generation module

Generates extern "C" exports for free functions, reshaping Result/Option
returns into flag-plus-slot records.
"""

from typing import Iterable, TYPE_CHECKING

from .codegen import (
    CodeGen, GeneratedArtifact,
    emit_attrs, emit_fn, inner_name, param_idents,
    render_params, render_signature,
    result_record_name, option_record_name,
)
from .types import TypeDescriptor, TypeKind, check_param, check_return

if TYPE_CHECKING:
    from .ir import FuncInfo, ParamInfo

ZEROED = 'unsafe { std::mem::zeroed() }'


def check_function(func: 'FuncInfo') -> TypeDescriptor:
    """Validate parameter and return types, returning the return classification"""
    for param in func.params:
        check_param(param.name, param.type)
    return check_return(func.return_type)


def wrapper_params(params: list['ParamInfo'], reserved: Iterable[str] = ()) -> list[str]:
    """Wrapper arguments with patterns replaced by plain identifiers"""
    return [f'{name}: {p.type}' for name, p in zip(param_idents(params, reserved), params)]


def call_args(params: list['ParamInfo'], reserved: Iterable[str] = ()) -> str:
    return ', '.join(param_idents(params, reserved))


def gen_shape_record(record: str, desc: TypeDescriptor, gen: CodeGen):
    """Generate the #[repr(C)] record for a Result or Option return

    Field order is fixed: flag first, then the payload slot(s).
    """
    gen.line('#[repr(C)]')
    gen.line('#[allow(non_camel_case_types)]')
    with gen.block(f'pub struct {record} {{'):
        if desc.kind == TypeKind.ERROR_SHAPE:
            gen.line('pub is_ok: u8,')
            gen.line(f'pub ok_value: {desc.ok.rust},')
            gen.line(f'pub err_value: {desc.err.rust},')
        else:
            gen.line('pub is_some: u8,')
            gen.line(f'pub value: {desc.inner.rust},')


def gen_shape_match(call: str, record: str, desc: TypeDescriptor, gen: CodeGen):
    """Generate the match converting a Result/Option into its record

    Every arm initializes every field; the inactive slot is zero-filled.
    """
    with gen.block(f'match {call} {{'):
        if desc.kind == TypeKind.ERROR_SHAPE:
            with gen.block(f'Ok(value) => {record} {{', '},'):
                gen.line('is_ok: 1,')
                gen.line('ok_value: value,')
                gen.line(f'err_value: {ZEROED},')
            with gen.block(f'Err(err) => {record} {{', '},'):
                gen.line('is_ok: 0,')
                gen.line(f'ok_value: {ZEROED},')
                gen.line('err_value: err,')
        else:
            with gen.block(f'Some(value) => {record} {{', '},'):
                gen.line('is_some: 1,')
                gen.line('value,')
            with gen.block(f'None => {record} {{', '},'):
                gen.line('is_some: 0,')
                gen.line(f'value: {ZEROED},')


def shape_record_name(base: str, desc: TypeDescriptor) -> str:
    if desc.kind == TypeKind.ERROR_SHAPE:
        return result_record_name(base)
    return option_record_name(base)


class FuncGenerator:
    """Generates function wrapper bindings"""

    def __init__(self, attr_name: str = 'ffi_export', no_mangle: str = '#[no_mangle]'):
        self.attr_name = attr_name
        self.no_mangle = no_mangle

    def generate(self, func: 'FuncInfo') -> list[GeneratedArtifact]:
        """Generate exports for a function"""
        ret = check_function(func)
        if ret.is_shape:
            return self._gen_shaped(func, ret)
        return [self._gen_passthrough(func)]

    def _gen_passthrough(self, func: 'FuncInfo') -> GeneratedArtifact:
        """Same name, params and return type; only the ABI changes"""
        gen = CodeGen()
        emit_attrs(func.attrs, gen, self.attr_name)
        gen.line(self.no_mangle)
        signature = render_signature(func.name, render_params(func.params), func.ret,
                                     vis='pub', abi='C')
        emit_fn(gen, signature, func.body)
        return GeneratedArtifact(func.name, gen.output())

    def _gen_shaped(self, func: 'FuncInfo', ret: TypeDescriptor) -> list[GeneratedArtifact]:
        """Record type + hidden inner function + exported wrapper"""
        record = shape_record_name(func.name, ret)
        inner = inner_name(func.name)

        record_gen = CodeGen()
        gen_shape_record(record, ret, record_gen)

        inner_gen = CodeGen()
        signature = render_signature(inner, render_params(func.params), func.return_type)
        emit_fn(inner_gen, signature, func.body)

        gen = CodeGen()
        emit_attrs(func.attrs, gen, self.attr_name)
        gen.line(self.no_mangle)
        signature = render_signature(func.name, ', '.join(wrapper_params(func.params)), record,
                                     vis='pub', abi='C')
        with gen.block(f'{signature} {{'):
            gen_shape_match(f'{inner}({call_args(func.params)})', record, ret, gen)

        return [
            GeneratedArtifact(record, record_gen.output(), kind='record'),
            GeneratedArtifact(inner, inner_gen.output(), kind='item'),
            GeneratedArtifact(func.name, gen.output()),
        ]

"""
Struct binding generation module

Generates the fixed-layout struct, its deallocator, and field accessors.
"""

from typing import TYPE_CHECKING

from .codegen import (
    CodeGen, GeneratedArtifact,
    emit_attrs, free_name, getter_name, setter_name,
)
from .errors import FfiTypeError
from .types import TypeDescriptor, TypeKind, classify, field_accessible

if TYPE_CHECKING:
    from .ir import StructInfo, FieldInfo


def is_repr_attr(attr: str) -> bool:
    return attr.replace(' ', '').startswith('#[repr(')


def _with_vis(vis: str, text: str) -> str:
    return f'{vis} {text}' if vis else text


class StructGenerator:
    """Generates struct bindings"""

    def __init__(self, attr_name: str = 'ffi_export', no_mangle: str = '#[no_mangle]',
                 strict_fields: bool = False):
        self.attr_name = attr_name
        self.no_mangle = no_mangle
        self.strict_fields = strict_fields

    def generate(self, struct: 'StructInfo') -> list[GeneratedArtifact]:
        """Generate all bindings for a struct"""
        fields = self.accessible_fields(struct)
        artifacts = [
            self.gen_layout(struct),
            self.gen_free(struct.name),
        ]
        for field, desc in fields:
            artifacts.append(self._gen_getter(struct.name, field, desc))
            artifacts.append(self._gen_setter(struct.name, field))
        return artifacts

    def accessible_fields(self, struct: 'StructInfo') -> list[tuple['FieldInfo', TypeDescriptor]]:
        """Fields that get accessors, with their classification

        Unsupported field types are skipped without a diagnostic unless
        strict_fields is set. Tuple-struct members never get accessors.
        """
        result = []
        for field in struct.fields:
            if field.name is None:
                continue
            desc = classify(field.type)
            if field_accessible(desc):
                result.append((field, desc))
            elif self.strict_fields:
                raise FfiTypeError(
                    f'field `{field.name}` has type `{desc.rust}` which cannot cross the C boundary',
                    struct.name)
        return result

    def gen_layout(self, struct: 'StructInfo', extra_attrs: tuple[str, ...] = ()) -> GeneratedArtifact:
        """Re-emit the struct as pub with a forced #[repr(C)] layout"""
        gen = CodeGen()
        for attr in extra_attrs:
            gen.line(attr)
        gen.line('#[repr(C)]')
        emit_attrs([a for a in struct.attrs if not is_repr_attr(a)], gen, self.attr_name)
        if struct.is_tuple:
            members = ', '.join(_with_vis(f.vis, f.type) for f in struct.fields)
            gen.line(f'pub struct {struct.name}({members});')
            return GeneratedArtifact(struct.name, gen.output(), kind='item')
        with gen.block(f'pub struct {struct.name} {{'):
            for field in struct.fields:
                gen.line(f'{_with_vis(field.vis, field.name)}: {field.type},')
        return GeneratedArtifact(struct.name, gen.output(), kind='item')

    def gen_free(self, struct_name: str) -> GeneratedArtifact:
        """Generate the single deallocator; null is a no-op"""
        name = free_name(struct_name)
        gen = CodeGen()
        gen.line(self.no_mangle)
        gen.line('#[allow(non_snake_case)]')
        with gen.block(f'pub extern "C" fn {name}(ptr: *mut {struct_name}) {{'):
            with gen.block('if !ptr.is_null() {'):
                gen.line('unsafe { drop(Box::from_raw(ptr)); }')
        return GeneratedArtifact(name, gen.output())

    def _gen_getter(self, struct_name: str, field: 'FieldInfo',
                    desc: TypeDescriptor) -> GeneratedArtifact:
        """Generate field getter; containers are cloned on every read"""
        name = getter_name(struct_name, field.name)
        gen = CodeGen()
        gen.line(self.no_mangle)
        gen.line('#[allow(non_snake_case)]')
        with gen.block(f'pub extern "C" fn {name}(ptr: *const {struct_name}) -> {field.type} {{'):
            if desc.kind == TypeKind.CONTAINER:
                gen.line(f'unsafe {{ (*ptr).{field.name}.clone() }}')
            else:
                gen.line(f'unsafe {{ (*ptr).{field.name} }}')
        return GeneratedArtifact(name, gen.output())

    def _gen_setter(self, struct_name: str, field: 'FieldInfo') -> GeneratedArtifact:
        """Generate field setter (overwrite in place)"""
        name = setter_name(struct_name, field.name)
        gen = CodeGen()
        gen.line(self.no_mangle)
        gen.line('#[allow(non_snake_case)]')
        with gen.block(f'pub extern "C" fn {name}(ptr: *mut {struct_name}, value: {field.type}) {{'):
            gen.line(f'unsafe {{ (*ptr).{field.name} = value; }}')
        return GeneratedArtifact(name, gen.output())

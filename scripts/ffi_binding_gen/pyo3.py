"""
PyO3 binding generation module

Generates bindings for the Python native-extension protocol from the same
declarations as the C ABI path. PyO3 converts Result/Option natively, so no
records are generated here.
"""

from dataclasses import replace
from typing import Optional, TYPE_CHECKING

from .codegen import (
    CodeGen, GeneratedArtifact,
    emit_attrs, emit_fn, render_params, render_signature,
)
from .func import check_function
from .errors import StructuralError
from .method import ReceiverKind, emit_method

if TYPE_CHECKING:
    from .ir import FuncInfo, StructInfo, ImplInfo
    from .method import MethodGenerator, MethodPlan
    from .struct import StructGenerator

PYCLASS_ATTR = '#[pyo3::pyclass(get_all, set_all)]'
TUPLE_PYCLASS_ATTR = '#[pyo3::pyclass]'  # unnamed members have no Python attribute


class PyO3Generator:
    """Generates PyO3 functions, classes and module registration"""

    def __init__(self, struct_gen: 'StructGenerator', method_gen: 'MethodGenerator',
                 attr_name: str = 'ffi_export'):
        self.struct_gen = struct_gen
        self.method_gen = method_gen
        self.attr_name = attr_name

    def generate_function(self, func: 'FuncInfo') -> list[GeneratedArtifact]:
        """Generate #[pyfunction] with the original signature and body"""
        check_function(func)
        gen = CodeGen()
        emit_attrs(func.attrs, gen, self.attr_name)
        gen.line('#[pyo3::pyfunction]')
        signature = render_signature(func.name, render_params(func.params), func.ret, vis='pub')
        emit_fn(gen, signature, func.body)
        return [GeneratedArtifact(func.name, gen.output(), kind='pyfunction')]

    def generate_struct(self, struct: 'StructInfo') -> list[GeneratedArtifact]:
        """Generate #[pyclass] struct; fields are exposed directly

        The #[repr(C)] layout and the deallocator are kept so pointers
        handed out over the C ABI can still be released.
        """
        self.struct_gen.accessible_fields(struct)
        attr = TUPLE_PYCLASS_ATTR if struct.is_tuple else PYCLASS_ATTR
        layout = self.struct_gen.gen_layout(struct, extra_attrs=(attr,))
        return [
            replace(layout, kind='pyclass'),
            self.struct_gen.gen_free(struct.name),
        ]

    def generate_impl(self, impl: 'ImplInfo') -> list[GeneratedArtifact]:
        """Generate a #[pymethods] block for the exported methods"""
        plans = self.method_gen.plan(impl)
        exported = {id(plan.method) for plan in plans}
        others = [m for m in impl.methods if id(m) not in exported]

        gen = CodeGen()
        emit_attrs(impl.attrs, gen, self.attr_name)
        gen.line('#[pyo3::pymethods]')
        with gen.block(f'impl {impl.self_ty} {{'):
            for i, plan in enumerate(plans):
                if i:
                    gen.line()
                emit_method(plan.method, gen, self.attr_name, self._method_attrs(plan))

        # unmarked methods stay plain Rust and invisible to Python
        if others:
            gen.line()
            with gen.block(f'impl {impl.self_ty} {{'):
                for i, method in enumerate(others):
                    if i:
                        gen.line()
                    emit_method(method, gen, self.attr_name)

        return [GeneratedArtifact(impl.name, gen.output(), kind='impl')]

    def _method_attrs(self, plan: 'MethodPlan') -> tuple[str, ...]:
        """A receiver-less `new` is the constructor hook; other receiver-less methods are static"""
        if plan.receiver != ReceiverKind.NONE:
            return ()
        if plan.method.name == 'new':
            return ('#[new]',)
        return ('#[staticmethod]',)

    def registration(self, artifact: GeneratedArtifact) -> Optional[str]:
        """Module registration line for one artifact"""
        if artifact.kind == 'pyfunction':
            return f'm.add_function(pyo3::wrap_pyfunction!({artifact.symbol}, m)?)?;'
        if artifact.kind == 'pyclass':
            return f'm.add_class::<{artifact.symbol}>()?;'
        return None

    def generate_module(self, module_name: str,
                        artifacts: list[GeneratedArtifact]) -> GeneratedArtifact:
        """Generate the #[pymodule] init function registering every binding"""
        if not module_name.isidentifier():
            raise StructuralError(
                f'#[pyo3::pymodule] requires a module name that is a Rust identifier, got `{module_name}`')
        gen = CodeGen()
        gen.line('#[pyo3::pymodule]')
        header = (f"fn {module_name}(m: &pyo3::Bound<'_, pyo3::types::PyModule>)"
                  f" -> pyo3::PyResult<()> {{")
        with gen.block(header):
            gen.line('use pyo3::prelude::*;')
            for artifact in artifacts:
                line = self.registration(artifact)
                if line:
                    gen.line(line)
            gen.line('Ok(())')
        return GeneratedArtifact(module_name, gen.output(), kind='pymodule')

"""
Main generator module

Orchestrates all components to generate complete bindings for one module,
for either the C ABI or the PyO3 target.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import os

from .classify import DeclKind, classify_declaration, check_safety, decl_name
from .codegen import CodeGen, GeneratedArtifact
from .errors import BindgenError
from .func import FuncGenerator
from .ir import IR, Decl, ImplInfo
from .method import MethodGenerator
from .pyo3 import PyO3Generator
from .struct import StructGenerator
from .symbols import SymbolRegistry


EDITIONS = ('2015', '2018', '2021', '2024')


class Target(Enum):
    C_ABI = 'c-abi'
    PYTHON = 'python'


TARGET_LABELS = {
    Target.C_ABI: 'C ABI',
    Target.PYTHON: 'PyO3',
}


class BindingConfig:
    """Configuration for a module"""

    def __init__(self, module_name: str = '', target: Target = Target.C_ABI,
                 attr_name: str = 'ffi_export', require_method_marker: bool = False,
                 strict_fields: bool = False, edition: str = '2021'):
        self.module_name = module_name
        self.target = target
        self.attr_name = attr_name
        self.require_method_marker = require_method_marker
        self.strict_fields = strict_fields
        if edition not in EDITIONS:
            raise ValueError(f'unknown Rust edition {edition!r}, expected one of {", ".join(EDITIONS)}')
        self.edition = edition
        self.ignores: set[str] = set()

    @property
    def no_mangle(self) -> str:
        """Export attribute; edition 2024 requires the unsafe(...) form"""
        if int(self.edition) >= 2024:
            return '#[unsafe(no_mangle)]'
        return '#[no_mangle]'


@dataclass
class Expansion:
    """Result of expanding one declaration"""
    decl: str
    artifacts: list[GeneratedArtifact] = field(default_factory=list)
    error: Optional[BindgenError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def symbols(self) -> list[str]:
        return [a.symbol for a in self.artifacts if a.claims_symbol]

    @property
    def source(self) -> str:
        """Generated code, or the diagnostic that replaces it"""
        if self.error is not None:
            return self.error.to_compile_error()
        return '\n\n'.join(a.source for a in self.artifacts)


class Generator:
    """Main binding generator"""

    def __init__(self, config: BindingConfig):
        self.config = config
        self.func_gen = FuncGenerator(config.attr_name, config.no_mangle)
        self.struct_gen = StructGenerator(config.attr_name, config.no_mangle,
                                          strict_fields=config.strict_fields)
        self.method_gen = MethodGenerator(config.attr_name, config.no_mangle,
                                          require_marker=config.require_method_marker)
        self.pyo3_gen = PyO3Generator(self.struct_gen, self.method_gen, config.attr_name)

        self._emitters = {
            (Target.C_ABI, DeclKind.FUNCTION): self.func_gen.generate,
            (Target.C_ABI, DeclKind.DATA_RECORD): self.struct_gen.generate,
            (Target.C_ABI, DeclKind.METHOD_COLLECTION): self.method_gen.generate,
            (Target.PYTHON, DeclKind.FUNCTION): self.pyo3_gen.generate_function,
            (Target.PYTHON, DeclKind.DATA_RECORD): self.pyo3_gen.generate_struct,
            (Target.PYTHON, DeclKind.METHOD_COLLECTION): self.pyo3_gen.generate_impl,
        }

    @property
    def label(self) -> str:
        return TARGET_LABELS[self.config.target]

    def ignore(self, *names: str):
        """Add declarations to skip"""
        self.config.ignores.update(names)

    def expand(self, decl: Decl, registry: SymbolRegistry) -> Expansion:
        """Expand one declaration

        Any diagnostic replaces the whole output of the declaration; symbols
        are claimed only when every wrapper was generated.
        """
        name = decl_name(decl)
        attr_name = self.config.attr_name
        try:
            kind = classify_declaration(decl, attr_name)
            if isinstance(decl, ImplInfo):
                check_safety(decl, attr_name, self.method_gen.exported_methods(decl))
            else:
                check_safety(decl, attr_name)
            artifacts = self._emitters[(self.config.target, kind)](decl)
            registry.claim([a.symbol for a in artifacts if a.claims_symbol], name)
        except BindgenError as e:
            if e.decl is None:
                e.decl = name
            return Expansion(name, error=e)
        return Expansion(name, artifacts)

    def selected(self, ir: IR) -> list[Decl]:
        """Declarations not ignored by configuration"""
        return [d for d in ir.decls if decl_name(d) not in self.config.ignores]

    def generate_report(self, ir: IR) -> list[Expansion]:
        """Expand every declaration of a module with one shared registry"""
        registry = SymbolRegistry()
        expansions = [self.expand(decl, registry) for decl in self.selected(ir)]

        if self.config.target == Target.PYTHON:
            expansions.append(self._expand_module(ir, expansions, registry))

        return expansions

    def _expand_module(self, ir: IR, expansions: list[Expansion],
                       registry: SymbolRegistry) -> Expansion:
        """Module init registering every generated pyfunction and pyclass"""
        module_name = self.module_name(ir)
        origin = module_name or '<module>'
        artifacts = [a for e in expansions for a in e.artifacts]
        try:
            module = self.pyo3_gen.generate_module(module_name, artifacts)
            registry.claim([module.symbol], origin)
        except BindgenError as e:
            if e.decl is None:
                e.decl = origin
            return Expansion(origin, error=e)
        return Expansion(module_name, [module])

    def module_name(self, ir: IR) -> str:
        return self.config.module_name or ir.module

    def generate(self, ir: IR) -> str:
        """Generate the complete output file"""
        return self.render(ir, self.generate_report(ir))

    def render(self, ir: IR, expansions: list[Expansion]) -> str:
        gen = CodeGen()

        # Header
        gen.line('// machine generated, do not edit')
        gen.line(f'// {self.label} bindings for {self.module_name(ir)}')
        if ir.comment:
            gen.line(f'// {ir.comment}')
        gen.line()

        for expansion in expansions:
            gen.raw(expansion.source)
            gen.line()

        return gen.output()

    def write(self, ir: IR, output_path: str) -> list[Expansion]:
        """Generate bindings and write them to output_path"""
        print(f'=== Generating {self.label} bindings:')
        print(f'  {self.module_name(ir)} => {output_path}')

        for decl in ir.decls:
            if decl_name(decl) in self.config.ignores:
                print(f'  >> warning: skipping {decl_name(decl)}...')

        expansions = self.generate_report(ir)
        for expansion in expansions:
            if expansion.ok:
                print(f'  {expansion.decl} => {len(expansion.symbols)} symbol(s)')
            else:
                print(f'  >> error: {expansion.error}')

        output_dir = os.path.dirname(output_path)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)
        with open(output_path, 'w', newline='\n') as f:
            f.write(self.render(ir, expansions))

        return expansions

"""
Diagnostics module

Build-time errors raised while transforming a declaration. A failing
declaration is replaced in the output by its compile_error! diagnostic.
"""

from typing import Optional


class BindgenError(Exception):
    """Base class for all generator diagnostics"""

    category = 'error'

    def __init__(self, message: str, decl: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.decl = decl

    def __str__(self) -> str:
        if self.decl:
            return f'{self.decl}: {self.message}'
        return self.message

    def to_compile_error(self) -> str:
        """Render as a Rust compile_error! invocation"""
        escaped = self.message.replace('\\', '\\\\').replace('"', '\\"')
        return f'compile_error!("{escaped}");'


class StructuralError(BindgenError):
    """Declaration has a shape the generator cannot export"""
    category = 'structural'


class FfiTypeError(BindgenError):
    """A type cannot cross the foreign boundary"""
    category = 'type'


class SafetyError(BindgenError):
    """Declaration carries an effect that must not be re-exported"""
    category = 'safety'


class NameCollisionError(BindgenError):
    """Two declarations emit the same symbol in one build"""
    category = 'collision'

"""
IR (Intermediate Representation) module

Reads and represents Rust declaration JSON emitted by the attribute front end.
Each declaration is parsed once into one of FuncInfo, StructInfo, ImplInfo
or OtherDecl; later stages dispatch on that type and never re-parse.
"""

from dataclasses import dataclass, field
from typing import Optional, Union
import json


@dataclass
class ParamInfo:
    """Function or method parameter"""
    name: str
    type: str


@dataclass
class FieldInfo:
    """Struct field information; name is None for a tuple-struct member"""
    name: Optional[str]
    type: str
    vis: str = 'pub'


@dataclass
class FuncInfo:
    """Free function declaration"""
    name: str
    params: list[ParamInfo]
    ret: Optional[str] = None
    body: str = ''
    vis: str = ''
    is_unsafe: bool = False
    attrs: list[str] = field(default_factory=list)

    @property
    def return_type(self) -> str:
        """Declared return type, '()' when omitted"""
        return self.ret or '()'


@dataclass
class StructInfo:
    """Struct (data record) declaration"""
    name: str
    fields: list[FieldInfo]
    vis: str = 'pub'
    attrs: list[str] = field(default_factory=list)

    @property
    def is_tuple(self) -> bool:
        """Declared as `struct S(A, B);`"""
        return any(f.name is None for f in self.fields)


@dataclass
class MethodInfo:
    """Method inside an impl block"""
    name: str
    receiver: Optional[str]  # None, '&self', '&mut self', 'self', 'mut self'
    params: list[ParamInfo]
    ret: Optional[str] = None
    body: str = ''
    vis: str = ''
    is_unsafe: bool = False
    attrs: list[str] = field(default_factory=list)

    @property
    def return_type(self) -> str:
        return self.ret or '()'


@dataclass
class ImplInfo:
    """Impl block (method collection) declaration"""
    self_ty: str
    methods: list[MethodInfo]
    attrs: list[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return f'impl {self.self_ty}'


@dataclass
class OtherDecl:
    """Any declaration kind the generator does not export (enum, trait, ...)"""
    kind: str
    name: str


Decl = Union[FuncInfo, StructInfo, ImplInfo, OtherDecl]


@dataclass
class IR:
    """Intermediate representation of one crate's annotated declarations"""
    module: str
    decls: list[Decl]
    comment: str = ""

    @classmethod
    def load(cls, json_path: str) -> 'IR':
        """Load IR from a JSON file"""
        with open(json_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls._from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> 'IR':
        """Create IR from an already decoded dictionary"""
        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> 'IR':
        """Internal: Parse dict into IR"""
        decls: list[Decl] = []

        for decl in data.get('decls', []):
            kind = decl.get('kind')

            if kind == 'fn':
                decls.append(cls._parse_func(decl))

            elif kind == 'struct':
                decls.append(cls._parse_struct(decl))

            elif kind == 'impl':
                decls.append(cls._parse_impl(decl))

            else:
                decls.append(OtherDecl(kind=kind or '', name=decl.get('name', '')))

        return cls(
            module=data.get('module', ''),
            decls=decls,
            comment=data.get('comment', ''),
        )

    @staticmethod
    def _parse_params(decl: dict) -> list[ParamInfo]:
        return [ParamInfo(name=p['name'], type=p['type']) for p in decl.get('params', [])]

    @staticmethod
    def _parse_func(decl: dict) -> FuncInfo:
        """Parse function declaration"""
        return FuncInfo(
            name=decl['name'],
            params=IR._parse_params(decl),
            ret=decl.get('ret'),
            body=decl.get('body', ''),
            vis=decl.get('vis', ''),
            is_unsafe=decl.get('unsafe', False),
            attrs=list(decl.get('attrs', [])),
        )

    @staticmethod
    def _parse_struct(decl: dict) -> StructInfo:
        """Parse struct declaration"""
        fields = []
        for f in decl.get('fields', []):
            fields.append(FieldInfo(
                name=f.get('name'),
                type=f['type'],
                vis=f.get('vis', 'pub'),
            ))
        return StructInfo(
            name=decl['name'],
            fields=fields,
            vis=decl.get('vis', 'pub'),
            attrs=list(decl.get('attrs', [])),
        )

    @staticmethod
    def _parse_impl(decl: dict) -> ImplInfo:
        """Parse impl block declaration"""
        methods = []
        for m in decl.get('methods', []):
            methods.append(MethodInfo(
                name=m['name'],
                receiver=m.get('receiver'),
                params=IR._parse_params(m),
                ret=m.get('ret'),
                body=m.get('body', ''),
                vis=m.get('vis', ''),
                is_unsafe=m.get('unsafe', False),
                attrs=list(m.get('attrs', [])),
            ))
        return ImplInfo(
            self_ty=decl['self_ty'],
            methods=methods,
            attrs=list(decl.get('attrs', [])),
        )

    def funcs(self) -> list[FuncInfo]:
        """Return only function declarations"""
        return [d for d in self.decls if isinstance(d, FuncInfo)]

    def structs(self) -> list[StructInfo]:
        """Return only struct declarations"""
        return [d for d in self.decls if isinstance(d, StructInfo)]

    def impls(self) -> list[ImplInfo]:
        """Return only impl block declarations"""
        return [d for d in self.decls if isinstance(d, ImplInfo)]

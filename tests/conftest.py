import sys
from collections.abc import Callable
from pathlib import Path

import pytest

SCRIPTS_DIR = Path(__file__).resolve().parent.parent / "scripts"
if str(SCRIPTS_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPTS_DIR))

from ffi_binding_gen import (  # noqa: E402
    BindingConfig,
    FieldInfo,
    FuncInfo,
    Generator,
    ImplInfo,
    MethodInfo,
    ParamInfo,
    StructInfo,
    Target,
)


def _params(params: list[tuple[str, str]] | None) -> list[ParamInfo]:
    return [ParamInfo(name=name, type=type_) for name, type_ in (params or [])]


@pytest.fixture
def make_func() -> Callable[..., FuncInfo]:
    def _make_func(
        name: str,
        params: list[tuple[str, str]] | None = None,
        ret: str | None = None,
        body: str = "",
        **kwargs: object,
    ) -> FuncInfo:
        return FuncInfo(name=name, params=_params(params), ret=ret, body=body, **kwargs)

    return _make_func


@pytest.fixture
def make_struct() -> Callable[..., StructInfo]:
    def _make_struct(name: str, fields: list[tuple[str, str]], **kwargs: object) -> StructInfo:
        return StructInfo(
            name=name,
            fields=[FieldInfo(name=fname, type=ftype) for fname, ftype in fields],
            **kwargs,
        )

    return _make_struct


@pytest.fixture
def make_method() -> Callable[..., MethodInfo]:
    def _make_method(
        name: str,
        receiver: str | None = None,
        params: list[tuple[str, str]] | None = None,
        ret: str | None = None,
        body: str = "",
        **kwargs: object,
    ) -> MethodInfo:
        return MethodInfo(
            name=name,
            receiver=receiver,
            params=_params(params),
            ret=ret,
            body=body,
            vis=kwargs.pop("vis", "pub"),
            **kwargs,
        )

    return _make_method


@pytest.fixture
def make_impl() -> Callable[..., ImplInfo]:
    def _make_impl(self_ty: str, methods: list[MethodInfo], **kwargs: object) -> ImplInfo:
        return ImplInfo(self_ty=self_ty, methods=methods, **kwargs)

    return _make_impl


@pytest.fixture
def make_generator() -> Callable[..., Generator]:
    def _make_generator(target: Target = Target.C_ABI, **overrides: object) -> Generator:
        config = BindingConfig(module_name="geometry", target=target, **overrides)
        return Generator(config)

    return _make_generator


@pytest.fixture
def sample_ir_dict() -> dict[str, object]:
    return {
        "module": "geometry",
        "decls": [
            {
                "kind": "fn",
                "name": "add",
                "vis": "pub",
                "params": [{"name": "a", "type": "i32"}, {"name": "b", "type": "i32"}],
                "ret": "i32",
                "body": "a + b",
            },
            {
                "kind": "fn",
                "name": "divide",
                "params": [{"name": "a", "type": "f64"}, {"name": "b", "type": "f64"}],
                "ret": "Result<f64, i32>",
                "body": "if b == 0.0 {\n    Err(-1)\n} else {\n    Ok(a / b)\n}",
            },
            {
                "kind": "fn",
                "name": "safe_sqrt",
                "params": [{"name": "x", "type": "f64"}],
                "ret": "Option<f64>",
                "body": "if x < 0.0 { None } else { Some(x.sqrt()) }",
            },
            {
                "kind": "struct",
                "name": "Point",
                "fields": [
                    {"name": "x", "type": "f64"},
                    {"name": "y", "type": "f64"},
                    {"name": "label", "type": "String"},
                    {"name": "cache", "type": "HashMap<u32, f64>"},
                ],
            },
            {
                "kind": "impl",
                "self_ty": "Point",
                "methods": [
                    {
                        "name": "new",
                        "receiver": None,
                        "params": [{"name": "x", "type": "f64"}, {"name": "y", "type": "f64"}],
                        "ret": "Self",
                        "vis": "pub",
                        "body": "Self { x, y, label: String::new(), cache: HashMap::new() }",
                    },
                    {
                        "name": "distance",
                        "receiver": "&self",
                        "params": [],
                        "ret": "f64",
                        "vis": "pub",
                        "body": "(self.x * self.x + self.y * self.y).sqrt()",
                    },
                    {
                        "name": "translate",
                        "receiver": "&mut self",
                        "params": [{"name": "dx", "type": "f64"}],
                        "vis": "pub",
                        "body": "self.x += dx;",
                    },
                ],
            },
            {"kind": "enum", "name": "Shape"},
        ],
    }

from collections.abc import Callable

import pytest

from ffi_binding_gen import FfiTypeError, FieldInfo, StructGenerator


@pytest.fixture
def point(make_struct: Callable):
    return make_struct("Point", [
        ("x", "f64"),
        ("y", "f64"),
        ("label", "String"),
        ("cache", "HashMap<u32, f64>"),
    ])


def test_generated_symbols(point) -> None:
    artifacts = StructGenerator().generate(point)

    assert [a.symbol for a in artifacts] == [
        "Point",
        "Point_free",
        "Point_get_x",
        "Point_set_x",
        "Point_get_y",
        "Point_set_y",
        "Point_get_label",
        "Point_set_label",
    ]


def test_layout_is_repr_c_and_keeps_every_field(point) -> None:
    layout = StructGenerator().gen_layout(point)

    assert layout.kind == "item"
    assert layout.source == (
        "#[repr(C)]\n"
        "pub struct Point {\n"
        "    pub x: f64,\n"
        "    pub y: f64,\n"
        "    pub label: String,\n"
        "    pub cache: HashMap<u32, f64>,\n"
        "}"
    )


def test_existing_repr_replaced_and_other_attrs_kept(make_struct: Callable) -> None:
    struct = make_struct("Rgb", [("r", "u8")],
                         attrs=["#[ffi_export]", "#[repr(u8)]", "#[derive(Clone, Debug)]"])

    layout = StructGenerator().gen_layout(struct)

    assert layout.source.startswith("#[repr(C)]\n#[derive(Clone, Debug)]\npub struct Rgb {")
    assert "repr(u8)" not in layout.source
    assert "ffi_export" not in layout.source


def test_private_field_visibility_is_preserved(make_struct: Callable) -> None:
    struct = make_struct("Counter", [])
    struct.fields.append(FieldInfo("n", "u32", vis=""))

    layout = StructGenerator().gen_layout(struct)

    assert "    n: u32," in layout.source


def test_single_free_with_null_guard() -> None:
    free = StructGenerator().gen_free("Point")

    assert free.symbol == "Point_free"
    assert free.source == (
        "#[no_mangle]\n"
        "#[allow(non_snake_case)]\n"
        'pub extern "C" fn Point_free(ptr: *mut Point) {\n'
        "    if !ptr.is_null() {\n"
        "        unsafe { drop(Box::from_raw(ptr)); }\n"
        "    }\n"
        "}"
    )


def test_primitive_getter_copies(point) -> None:
    artifacts = {a.symbol: a for a in StructGenerator().generate(point)}

    getter = artifacts["Point_get_x"].source
    assert 'pub extern "C" fn Point_get_x(ptr: *const Point) -> f64 {' in getter
    assert "unsafe { (*ptr).x }" in getter


def test_container_getter_clones(point) -> None:
    artifacts = {a.symbol: a for a in StructGenerator().generate(point)}

    assert "unsafe { (*ptr).label.clone() }" in artifacts["Point_get_label"].source


def test_setter_overwrites_in_place(point) -> None:
    artifacts = {a.symbol: a for a in StructGenerator().generate(point)}

    setter = artifacts["Point_set_y"].source
    assert 'pub extern "C" fn Point_set_y(ptr: *mut Point, value: f64) {' in setter
    assert "unsafe { (*ptr).y = value; }" in setter


def test_pointer_fields_get_accessors(make_struct: Callable) -> None:
    struct = make_struct("Node", [("next", "*mut Node")])

    symbols = [a.symbol for a in StructGenerator().generate(struct)]

    assert symbols == ["Node", "Node_free", "Node_get_next", "Node_set_next"]


def test_strict_fields_rejects_unsupported_field(point) -> None:
    with pytest.raises(FfiTypeError, match="field `cache`") as excinfo:
        StructGenerator(strict_fields=True).generate(point)

    assert excinfo.value.decl == "Point"


def test_shape_typed_field_is_skipped(make_struct: Callable) -> None:
    struct = make_struct("Reading", [("value", "Option<f64>"), ("raw", "u16")])

    symbols = [a.symbol for a in StructGenerator().generate(struct)]

    assert symbols == ["Reading", "Reading_free", "Reading_get_raw", "Reading_set_raw"]


def test_empty_struct_still_gets_free(make_struct: Callable) -> None:
    symbols = [a.symbol for a in StructGenerator().generate(make_struct("Unit", []))]

    assert symbols == ["Unit", "Unit_free"]


def test_tuple_struct_keeps_members_in_order(make_struct: Callable) -> None:
    struct = make_struct("Pair", [], attrs=["#[derive(Clone, Copy)]"])
    struct.fields.extend([FieldInfo(None, "i32"), FieldInfo(None, "f64", vis="")])

    artifacts = StructGenerator(strict_fields=True).generate(struct)

    assert [a.symbol for a in artifacts] == ["Pair", "Pair_free"]
    assert artifacts[0].source == (
        "#[repr(C)]\n"
        "#[derive(Clone, Copy)]\n"
        "pub struct Pair(pub i32, f64);"
    )

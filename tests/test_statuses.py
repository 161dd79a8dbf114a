import pytest

from taskline.statuses import (
    DEFAULT_REGISTRY,
    DEFAULT_STATUSES,
    InvalidCustomStatus,
    StatusDescriptor,
    StatusRegistry,
    build_status_registry,
    validate_symbol,
)


def _custom(key, symbol):
    return {"key": key, "symbol": symbol, "name": key.title()}


def test_default_registry_maps_symbols_and_keys():
    assert DEFAULT_REGISTRY.by_symbol(" ").key == "todo"
    assert DEFAULT_REGISTRY.by_symbol("x").key == "done"
    assert DEFAULT_REGISTRY.by_symbol("-").key == "canceled"
    assert DEFAULT_REGISTRY.by_symbol("/").key == "in_progress"
    assert DEFAULT_REGISTRY.by_key("question").symbol == "?"
    assert DEFAULT_REGISTRY.by_symbol("z") is None
    assert [d.key for d in DEFAULT_REGISTRY.descriptors()] == [
        "todo",
        "done",
        "important",
        "canceled",
        "in_progress",
        "question",
        "start",
    ]


def test_color_of_returns_background_and_text():
    assert DEFAULT_REGISTRY.color_of("done") == {"bg": "#52c41a", "text": "#FFFFFF"}
    assert DEFAULT_REGISTRY.color_of("missing") is None


def test_descriptor_to_dict_uses_camel_case():
    payload = DEFAULT_REGISTRY.by_key("important").to_dict()

    assert payload == {
        "key": "important",
        "symbol": "!",
        "name": "Important",
        "description": "Important task",
        "backgroundColor": "#ff4d4f",
        "textColor": "#FFFFFF",
        "isDefault": True,
    }


@pytest.mark.parametrize(
    ("candidate", "valid"),
    [
        ("w", True),
        ("7", True),
        ("x", False),
        ("X", False),
        ("!", False),
        ("#", False),
        ("*", False),
        ("ab", False),
        ("", False),
        ("é", False),
        (None, False),
    ],
)
def test_validate_symbol_for_custom_statuses(candidate, valid):
    check = validate_symbol(candidate)

    assert check.valid is valid
    assert (check.reason is None) is valid


def test_validate_symbol_allows_reserved_letters_for_defaults():
    assert validate_symbol("x", is_custom=False).valid is True
    assert validate_symbol("^", is_custom=False).valid is False


def test_build_status_registry_adds_custom_entries():
    registry = build_status_registry(
        [
            {
                "key": "waiting",
                "symbol": "w",
                "name": "Waiting",
                "backgroundColor": "#000000",
                "textColor": "#eeeeee",
            }
        ]
    )

    descriptor = registry.by_symbol("w")
    assert descriptor.key == "waiting"
    assert descriptor.is_default is False
    assert registry.color_of("waiting") == {"bg": "#000000", "text": "#eeeeee"}
    assert [d.key for d in registry.custom()] == ["waiting"]
    assert registry.by_key("done") is not None


def test_build_status_registry_caps_custom_entries():
    entries = [_custom(f"c{index}", symbol) for index, symbol in enumerate("abcd")]

    with pytest.raises(InvalidCustomStatus):
        build_status_registry(entries)


def test_build_status_registry_rejects_reserved_symbol():
    with pytest.raises(InvalidCustomStatus) as excinfo:
        build_status_registry([_custom("urgent", "!")])

    assert "urgent" in str(excinfo.value)


def test_uppercase_x_cannot_be_claimed_by_a_custom_status():
    with pytest.raises(InvalidCustomStatus):
        build_status_registry([{"key": "xtra", "symbol": "X"}])

    hijack = StatusDescriptor("xtra", "X", "Xtra", "#fff", "#000")
    with pytest.raises(InvalidCustomStatus):
        StatusRegistry([*DEFAULT_STATUSES, hijack])


def test_build_status_registry_rejects_duplicate_symbols_and_keys():
    with pytest.raises(InvalidCustomStatus):
        build_status_registry([_custom("one", "w"), _custom("two", "w")])
    with pytest.raises(InvalidCustomStatus):
        build_status_registry([_custom("done", "d")])


def test_build_status_registry_rejects_malformed_entries():
    with pytest.raises(InvalidCustomStatus):
        build_status_registry(["w"])
    with pytest.raises(InvalidCustomStatus):
        build_status_registry([{"symbol": "w"}])


def test_registry_requires_default_statuses():
    without_done = [d for d in DEFAULT_STATUSES if d.key != "done"]

    with pytest.raises(InvalidCustomStatus):
        StatusRegistry(without_done)

    with_custom = [*DEFAULT_STATUSES, StatusDescriptor("later", "l", "Later", "#fff", "#000")]
    assert StatusRegistry(with_custom).by_symbol("l").key == "later"

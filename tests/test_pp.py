from dataclasses import dataclass

import pytest

from voidcloud.pp import dedent, to_json


@dataclass
class _User:
    id: int
    name: str


def test_json_of_dataclass():
    expected = dedent(
        """
    {
      "id": 42,
      "name": "Jake"
    }"""
    )
    assert to_json(_User(id=42, name="Jake")) == expected


def test_json_of_dict():
    assert to_json({"id": 42, "name": "Jake"}) == '{\n  "id": 42,\n  "name": "Jake"\n}'


def test_json_escapes_html():
    assert to_json({"a": "<b>&"}) == '{\n  "a": "\\u003cb\\u003e\\u0026"\n}'


def test_json_empty_containers():
    assert to_json({}) == "{}"
    assert to_json([]) == "[]"


def test_json_unsupported_value():
    with pytest.raises(TypeError):
        to_json(object())


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("", ""),
        ("     ", ""),
        ("hello world", "hello world"),
        ("  hello world", "hello world"),
        ("    hello world", "hello world"),
        ("\thello world", "hello world"),
        (
            '\n  {\n    id: 42,\n    name: "jake"\n  }',
            '{\n  id: 42,\n  name: "jake"\n}',
        ),
        (
            '\n  {\n  id: 42,\n  name: "jake"\n}',
            '  {\n  id: 42,\n  name: "jake"\n}',
        ),
        (
            '\n{\n  id: 42,\n  name: "jake"\n  }',
            '{\n  id: 42,\n  name: "jake"\n  }',
        ),
        (
            '{\n    id: 42,\n    name: "jake"\n  }',
            '{\n    id: 42,\n    name: "jake"\n  }',
        ),
    ],
)
def test_dedent(text, expected):
    assert dedent(text) == expected


def test_dedent_mixed_tabs_and_spaces_have_no_margin():
    assert dedent("\tone\n  two") == "\tone\n  two"
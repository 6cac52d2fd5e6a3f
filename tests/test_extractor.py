# tests/test_extractor.py
import pytest

from laila.core.extractor import PayloadShape, classify, extract

SAMPLES = ["Avalie os riscos antes.", "  Olá! Como posso ajudar?\n", "x", "linha 1\nlinha 2  "]


def _choices(m):
    return {"choices": [{"message": {"role": "assistant", "content": m}}]}


def _output_text(m):
    return {"output_text": m}


def _output_blocks(m, tag="output_text"):
    return {"output": [{"type": "message", "content": [{"type": tag, "text": m}]}]}


@pytest.mark.parametrize("m", SAMPLES)
def test_each_known_shape_yields_trimmed_text(m):
    assert extract(_choices(m)) == m.strip()
    assert extract(_output_text(m)) == m.strip()
    for tag in ("output_text", "text"):
        assert extract(_output_blocks(m, tag)) == m.strip()


@pytest.mark.parametrize("payload", [
    None,
    {},
    [],
    "just a string",
    {"output_text": "   "},
    {"output": [{"content": [{"type": "output_text", "text": " \n "}]}]},
    {"choices": [{"message": {"content": "\t"}}]},
    {"choices": [{"message": {"content": {"text": "  "}}}]},
    {"output": [], "choices": []},
])
def test_absent_when_no_text(payload):
    assert extract(payload) is None
    assert classify(payload) is PayloadShape.UNRECOGNIZED


def test_output_text_wins_over_choices():
    payload = {"output_text": "primeiro", "choices": [{"message": {"content": "segundo"}}]}
    assert extract(payload) == "primeiro"
    assert classify(payload) is PayloadShape.OUTPUT_TEXT


def test_blank_output_text_falls_through_to_blocks():
    payload = {"output_text": "  ", **_output_blocks("dos blocos")}
    assert extract(payload) == "dos blocos"
    assert classify(payload) is PayloadShape.OUTPUT_BLOCKS


def test_blocks_prefer_tagged_text_over_earlier_untagged():
    payload = {"output": [{"content": [
        {"type": "reasoning", "text": "pensando..."},
        {"type": "output_text", "text": "resposta final"},
    ]}]}
    assert extract(payload) == "resposta final"


def test_blocks_fall_back_to_first_untagged_text():
    payload = {"output": [{"content": [
        {"type": "refusal"},
        {"type": "custom", "text": "  "},
        {"type": "custom", "text": "algo"},
    ]}]}
    assert extract(payload) == "algo"


def test_only_first_output_item_is_considered():
    payload = {"output": [
        {"type": "reasoning", "content": []},
        {"type": "message", "content": [{"type": "output_text", "text": "segundo item"}]},
    ]}
    assert extract(payload) is None


def test_choices_with_structured_content():
    assert extract({"choices": [{"message": {"content": {"type": "text", "text": " oi "}}}]}) == "oi"
    parts = {"choices": [{"message": {"content": [{"type": "text", "text": "a"}, {"type": "text", "text": "b"}]}}]}
    assert extract(parts) == "ab"
    assert classify(parts) is PayloadShape.CHOICES


def test_malformed_members_are_ignored():
    assert extract({"output": "nope", "choices": [None]}) is None
    assert extract({"output": [{"content": "nope"}], "choices": [{"message": "nope"}]}) is None
    assert extract({"output_text": 42, "choices": [{"message": {"content": "ok"}}]}) == "ok"

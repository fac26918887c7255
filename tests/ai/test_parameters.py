"""Tests for generation parameter sets."""

import json

import pytest

from nisaba_bot.ai.parameters import PAYLOAD_KEYS, ParameterSet, payload_key
from nisaba_bot.core.exceptions import ParameterProfileError


def test_payload_keys_cover_every_field():
    assert len(PAYLOAD_KEYS) == 23
    assert set(PAYLOAD_KEYS) == set(ParameterSet.model_fields)


def test_empty_set_adds_nothing():
    params = ParameterSet()

    assert params.is_empty
    assert params.merge_into({"prompt": "hi"}) == {"prompt": "hi"}


def test_only_set_fields_are_sent():
    params = ParameterSet(temperature=0.7, seed=0, penalize_nl=False)

    assert params.payload_fields() == {"temperature": 0.7, "seed": 0, "penalize_nl": False}


def test_merge_keeps_existing_keys():
    payload = {"messages": [], "stream": False}

    merged = ParameterSet(top_k=40, n_predict=128).merge_into(payload)

    assert merged == {"messages": [], "stream": False, "top_k": 40, "n_predict": 128}


def test_compact_keys_drop_underscores():
    params = ParameterSet(top_k=40, n_predict=128, mirostat_tau=5.0, slot_id=1, penalize_nl=True)

    assert params.payload_fields("compact") == {
        "topk": 40,
        "npredict": 128,
        "mirostattau": 5.0,
        "slotid": 1,
        "penalizenl": True,
    }
    merged = ParameterSet(top_k=40, ignore_eos=False).merge_into({"prompt": "hi"}, "compact")
    assert merged == {"prompt": "hi", "topk": 40, "ignoreeos": False}


def test_compact_keys_are_unique():
    assert len({payload_key(name, "compact") for name in PAYLOAD_KEYS}) == len(PAYLOAD_KEYS)


def test_from_file_ignores_unknown_keys(tmp_path):
    path = tmp_path / "options.creative.json"
    path.write_text(json.dumps({"temperature": 1.2, "mystery": True}), encoding="utf-8")

    params = ParameterSet.from_file(path, profile="creative")

    assert params.payload_fields() == {"temperature": 1.2}


def test_from_file_null_document_is_empty(tmp_path):
    path = tmp_path / "options.json"
    path.write_text("null", encoding="utf-8")

    assert ParameterSet.from_file(path).is_empty


def test_from_file_missing(tmp_path):
    with pytest.raises(ParameterProfileError) as exc_info:
        ParameterSet.from_file(tmp_path / "options.nope.json", profile="nope")

    assert exc_info.value.profile == "nope"


@pytest.mark.parametrize(
    "content",
    ["{broken", "[1, 2]", json.dumps({"top_k": "many"})],
)
def test_from_file_invalid(tmp_path, content):
    path = tmp_path / "options.bad.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ParameterProfileError):
        ParameterSet.from_file(path)

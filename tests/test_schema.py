"""Tests for envelope JSON schema validation using jsonschema."""

from __future__ import annotations

import json
import pathlib

import pytest
from jsonschema import ValidationError, validate

from uidump.format import build_envelope
from uidump.loader import load_file, load_hierarchy

ROOT_DIR = pathlib.Path(__file__).resolve().parent.parent
SCHEMA_PATH = ROOT_DIR / "schema" / "uidump.schema.json"
DUMP_PATH = ROOT_DIR / "tests" / "data" / "window_dump.xml"


@pytest.fixture(scope="module")
def schema():
    with open(SCHEMA_PATH, encoding="utf-8") as f:
        return json.load(f)


class TestSchemaStructure:
    def test_schema_valid_json(self, schema):
        assert "$schema" in schema
        assert schema["type"] == "object"

    def test_required_fields(self, schema):
        assert set(schema["required"]) == {"version", "timestamp", "tree"}


class TestEnvelopeValidation:
    def test_loaded_dump_validates(self, schema):
        validate(build_envelope(load_file(DUMP_PATH), resolution="1080 x 1920"), schema)

    def test_json_round_trip_validates(self, schema):
        env = build_envelope(load_file(DUMP_PATH), source=str(DUMP_PATH))
        validate(json.loads(json.dumps(env)), schema)

    def test_empty_tree_validates(self, schema):
        validate(build_envelope(load_hierarchy("<hierarchy />")), schema)

    def test_boundless_node_validates(self, schema):
        validate(build_envelope(load_hierarchy("<hierarchy><node /></hierarchy>")), schema)

    def test_missing_tree_rejected(self, schema):
        env = build_envelope(load_file(DUMP_PATH))
        del env["tree"]
        with pytest.raises(ValidationError):
            validate(env, schema)

    def test_bad_node_id_rejected(self, schema):
        env = build_envelope(load_file(DUMP_PATH))
        env["tree"][0]["id"] = "e0"
        with pytest.raises(ValidationError):
            validate(env, schema)

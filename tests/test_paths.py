"""Tests for path level parsing and document id derivation."""

import pytest

from es_fuse.models import (
    ConnectionLocator, IndexLocator, Level, RecordLocator, RootLocator, UnknownLocator,
)
from es_fuse.paths import join_path, parse, record_id, record_name, split_path


class TestParse:
    """Tests for parse()."""

    def test_root(self):
        assert parse("/") == RootLocator()
        assert parse("/").level == Level.ROOT

    def test_connection(self):
        loc = parse("/es1")
        assert loc == ConnectionLocator(connection="es1")
        assert loc.level == Level.CONNECTION

    def test_index(self):
        loc = parse("/es1/logs")
        assert loc == IndexLocator(connection="es1", index="logs")
        assert loc.level == Level.INDEX

    def test_record(self):
        loc = parse("/es1/logs/doc1.json")
        assert loc == RecordLocator(connection="es1", index="logs", record="doc1.json")
        assert loc.level == Level.RECORD

    def test_deeper_than_record_is_unknown(self):
        loc = parse("/es1/logs/doc1.json/field")
        assert isinstance(loc, UnknownLocator)
        assert loc.level == Level.UNKNOWN
        assert loc.segments == ("es1", "logs", "doc1.json", "field")

    def test_connection_name_with_port_kept_verbatim(self):
        assert parse("/localhost:9200").connection == "localhost:9200"

    def test_connection_name_with_scheme_is_one_segment(self):
        loc = parse(join_path("/", "https+search.local:443"))
        assert loc.level == Level.CONNECTION
        assert loc.connection == "https+search.local:443"

    def test_trailing_slash_ignored(self):
        assert parse("/es1/logs/") == parse("/es1/logs")

    def test_double_slash_collapses(self):
        assert parse("/es1//logs") == IndexLocator(connection="es1", index="logs")

    def test_empty_string_is_root(self):
        assert parse("") == RootLocator()

    @pytest.mark.parametrize("path,level", [
        ("/", Level.ROOT),
        ("/a", Level.CONNECTION),
        ("/x/y", Level.INDEX),
        ("/x/y/z", Level.RECORD),
        ("/x/y/z/w", Level.UNKNOWN),
        ("/x/y/z/w/v", Level.UNKNOWN),
    ])
    def test_level_depends_only_on_depth(self, path, level):
        assert parse(path).level == level

    def test_parse_is_stable(self):
        assert parse("/es1/logs/doc1.json") == parse("/es1/logs/doc1.json")


class TestRecordId:
    """Tests for record_id()/record_name()."""

    def test_strips_json_extension(self):
        assert record_id("doc1.json") == "doc1"

    def test_strips_only_last_extension(self):
        assert record_id("archive.tar.json") == "archive.tar"

    def test_no_extension_unchanged(self):
        assert record_id("doc1") == "doc1"

    def test_leading_dot_name_unchanged(self):
        assert record_id(".hidden") == ".hidden"

    def test_record_name_appends_json(self):
        assert record_name("doc1") == "doc1.json"

    def test_name_id_roundtrip(self):
        assert record_id(record_name("AX93-k")) == "AX93-k"


class TestHelpers:

    def test_split_path(self):
        assert split_path("/a/b/") == ("a", "b")

    def test_join_path_from_root(self):
        assert join_path("/", "es1") == "/es1"

    def test_join_path_nested(self):
        assert join_path("/es1/logs", "doc1.json") == "/es1/logs/doc1.json"

"""
Test suite for the structedit codecs, format detection and validation.

    §1  JSON codec
    §2  ENV codec
    §3  XML codec — key/value shorthand
    §4  XML codec — structural mapping
    §5  XML serialization and round-trips
    §6  Format detection
    §7  Codec registry
    §8  Syntax validation
"""

import math
import sys
import os
import xml.etree.ElementTree as ET
import pytest

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from structedit.core import Scalar, Array, Object, XmlElement, Kind, from_plain, to_plain
from structedit.errors import (
    EmptyContentError, FormatSyntaxError, SerializationError,
    UnsupportedFormatError, StructEditError,
)
from structedit.formats import Codec, JsonCodec, from_json, to_json
from structedit.env_format import EnvCodec
from structedit.xml_format import XmlCodec, escape
from structedit.registry import (
    FormatKind, CodecRegistry, default_registry, resolve, looks_like_env,
)
from structedit.validation import validate


# ═══════════════════════════════════════════════════════════════════
#  §1  JSON CODEC
# ═══════════════════════════════════════════════════════════════════

class TestJsonCodec:

    def test_scenario_parse_and_serialize(self):
        tree = JsonCodec().parse('{"a":1}')
        assert tree == Object({"a": Scalar(1)})
        assert JsonCodec().serialize(tree) == '{\n  "a": 1\n}'

    def test_pretty_print_two_spaces(self):
        tree = from_plain({"a": [1, {"b": None}]})
        assert to_json(tree) == '{\n  "a": [\n    1,\n    {\n      "b": null\n    }\n  ]\n}'

    def test_key_order_preserved(self):
        tree = from_json('{"z": 1, "a": 2, "m": 3}')
        assert list(tree.entries) == ["z", "a", "m"]
        assert to_json(tree).index('"z"') < to_json(tree).index('"a"')

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_empty_content(self, text):
        with pytest.raises(EmptyContentError):
            JsonCodec().parse(text)

    def test_syntax_error_with_position(self):
        with pytest.raises(FormatSyntaxError) as info:
            JsonCodec().parse('{\n  "a": 1,\n}')
        assert info.value.message.startswith("Invalid JSON format")
        assert info.value.line == 3

    @pytest.mark.parametrize("text", ["NaN", '{"a": Infinity}', "[-Infinity]"])
    def test_rejects_non_json_constants(self, text):
        with pytest.raises(FormatSyntaxError):
            JsonCodec().parse(text)

    def test_non_finite_number_cannot_be_serialized(self):
        with pytest.raises(SerializationError):
            to_json(Object({"x": Scalar(math.inf)}))

    def test_top_level_array_and_scalar(self):
        assert from_json("[1, 2]") == Array([Scalar(1), Scalar(2)])
        assert from_json('"x"') == Scalar("x")

    def test_unicode_is_kept(self):
        assert "héllo" in to_json(Object({"s": Scalar("héllo")}))

    @pytest.mark.parametrize("data", [
        {},
        {"a": 1, "b": [True, False, None], "c": {"d": "e", "f": 1.5}},
        [{"x": []}, {"y": {}}],
        {"nested": {"deeper": {"deepest": [1, [2, [3]]]}}},
    ])
    def test_round_trip(self, data):
        tree = from_plain(data)
        assert from_json(to_json(tree)) == tree


# ═══════════════════════════════════════════════════════════════════
#  §2  ENV CODEC
# ═══════════════════════════════════════════════════════════════════

class TestEnvCodec:

    def test_scenario_quoted_comment_boolean(self):
        tree = EnvCodec().parse('KEY="a b"\n# c\nFLAG=true')
        assert tree == Object({"KEY": Scalar("a b"), "FLAG": Scalar(True)})

    def test_coercion(self):
        tree = EnvCodec().parse("PORT=8080\nRATIO=0.5\nNAME=svc\nOFF=false\nEMPTY=")
        assert tree.get("PORT") == Scalar(8080)
        assert tree.get("RATIO") == Scalar(0.5)
        assert tree.get("NAME") == Scalar("svc")
        assert tree.get("OFF") == Scalar(False)
        assert tree.get("EMPTY") == Scalar("")

    def test_split_at_first_equals(self):
        tree = EnvCodec().parse("URL=postgres://u:p@h/db?x=1")
        assert tree.get("URL") == Scalar("postgres://u:p@h/db?x=1")

    def test_single_quotes_and_one_layer_only(self):
        tree = EnvCodec().parse("A='x'\nB=\"'y'\"\nC=\"unbalanced")
        assert tree.get("A") == Scalar("x")
        assert tree.get("B") == Scalar("'y'")
        assert tree.get("C") == Scalar('"unbalanced')

    def test_quoted_values_are_still_coerced(self):
        assert EnvCodec().parse('N="42"').get("N") == Scalar(42)

    def test_whitespace_around_key_and_value(self):
        tree = EnvCodec().parse("   KEY   =   value  ")
        assert tree == Object({"KEY": Scalar("value")})

    def test_lines_without_key_are_ignored(self):
        tree = EnvCodec().parse("no equals here\n=orphan\nOK=1")
        assert tree == Object({"OK": Scalar(1)})

    def test_export_prefix(self):
        tree = EnvCodec().parse("export TOKEN=abc")
        assert tree == Object({"TOKEN": Scalar("abc")})

    def test_duplicate_key_overwrites_in_place(self):
        tree = EnvCodec().parse("A=1\nB=2\nA=3")
        assert list(tree.entries) == ["A", "B"]
        assert tree.get("A") == Scalar(3)

    def test_crlf(self):
        assert EnvCodec().parse("A=1\r\nB=2\r\n") == Object({"A": Scalar(1), "B": Scalar(2)})

    def test_empty_content(self):
        with pytest.raises(EmptyContentError):
            EnvCodec().parse("  \n ")

    def test_serialize_quotes_when_needed(self):
        tree = Object({"A": Scalar("plain"), "B": Scalar("has space"),
                       "C": Scalar("x#y"), "D": Scalar(3), "E": Scalar(True)})
        assert EnvCodec().serialize(tree) == 'A=plain\nB="has space"\nC="x#y"\nD=3\nE=true\n'

    def test_serialize_complex_values(self):
        tree = Object({"LIST": from_plain([1, "a"]), "OBJ": from_plain({"k": True})})
        assert EnvCodec().serialize(tree) == (
            '# Complex object for key "LIST"\n'
            'LIST="[1,"a"]"\n'
            '# Complex object for key "OBJ"\n'
            'OBJ="{"k":true}"\n'
        )

    def test_serialize_needs_object(self):
        with pytest.raises(SerializationError):
            EnvCodec().serialize(Array([Scalar(1)]))

    @pytest.mark.parametrize("data", [
        {"A": "x", "B": 2, "C": True, "D": False, "E": 1.25},
        {"SPACED": "hello world", "HASH": "a#b", "EMPTYISH": " lead"},
        {"ONLY": "one"},
    ])
    def test_round_trip(self, data):
        tree = from_plain(data)
        assert EnvCodec().parse(EnvCodec().serialize(tree)) == tree


# ═══════════════════════════════════════════════════════════════════
#  §3  XML — KEY/VALUE SHORTHAND
# ═══════════════════════════════════════════════════════════════════

class TestXmlKeyValue:

    def test_scenario_app_settings(self):
        tree = XmlCodec().parse('<appSettings><add key="x" value="1"/></appSettings>')
        assert tree == Object({"x": Scalar(1)})

    def test_values_coerced_and_ordered(self):
        tree = XmlCodec().parse(
            '<?xml version="1.0"?>\n<appSettings>\n'
            '  <add key="Debug" value="true"/>\n'
            '  <add key="Name" value="svc"/>\n'
            '  <add key="Timeout" value="2.5"/>\n'
            '</appSettings>')
        assert list(tree.entries) == ["Debug", "Name", "Timeout"]
        assert tree.get("Debug") == Scalar(True)
        assert tree.get("Timeout") == Scalar(2.5)

    def test_any_child_without_value_disables_shorthand(self):
        tree = XmlCodec().parse('<s><add key="a" value="1"/><add key="b"/></s>')
        assert isinstance(tree, XmlElement)

    def test_serialize_flat_form(self):
        text = XmlCodec().serialize(Object({"x": Scalar(1), "y": Scalar("a&b")}))
        assert text == ('<?xml version="1.0" encoding="UTF-8"?>\n'
                        '<appSettings>\n'
                        '  <add key="x" value="1"/>\n'
                        '  <add key="y" value="a&amp;b"/>\n'
                        '</appSettings>')

    def test_flat_round_trip(self):
        tree = Object({"a": Scalar(1), "b": Scalar(False), "c": Scalar("text")})
        assert XmlCodec().parse(XmlCodec().serialize(tree)) == tree


# ═══════════════════════════════════════════════════════════════════
#  §4  XML — STRUCTURAL MAPPING
# ═══════════════════════════════════════════════════════════════════

DOC = """<?xml version="1.0" encoding="UTF-8"?>
<configuration version="2">
  <server host="localhost" port="8080" secure="false"/>
  <name>My Service</name>
  <limits>
    <limit kind="cpu">4</limit>
    <limit kind="mem">512</limit>
  </limits>
  <empty></empty>
</configuration>"""


class TestXmlStructural:

    def test_root_element(self):
        tree = XmlCodec().parse(DOC)
        assert isinstance(tree, XmlElement)
        assert tree.tag == "configuration"
        assert tree.attributes == {"version": Scalar(2)}
        assert list(tree.children) == ["server", "name", "limits", "empty"]

    def test_attribute_only_element(self):
        server = XmlCodec().parse(DOC).children["server"]
        assert server.kind == Kind.HAS_ATTRIBUTES
        assert list(server.attributes) == ["host", "port", "secure"]
        assert server.attributes["port"] == Scalar(8080)
        assert server.attributes["secure"] == Scalar(False)

    def test_text_element(self):
        name = XmlCodec().parse(DOC).children["name"]
        assert name.kind == Kind.HAS_TEXT
        assert name.text == Scalar("My Service")

    def test_repeated_tags_become_array(self):
        limits = XmlCodec().parse(DOC).children["limits"]
        assert limits.kind == Kind.HAS_CHILDREN
        items = limits.children["limit"]
        assert isinstance(items, Array)
        assert [i.attributes["kind"] for i in items] == [Scalar("cpu"), Scalar("mem")]
        assert items.items[1].text == Scalar(512)
        assert items.items[0].kind == Kind.HAS_ATTRIBUTES | Kind.HAS_TEXT

    def test_empty_element(self):
        assert XmlCodec().parse(DOC).children["empty"].kind == Kind(0)

    def test_whitespace_text_is_no_text(self):
        tree = XmlCodec().parse("<a>\n   \n</a>")
        assert tree.text is None

    def test_namespaces_keep_prefixes(self):
        tree = XmlCodec().parse(
            '<soap:Envelope xmlns:soap="http://example.com/soap">'
            '<soap:Body xml:lang="en">hi</soap:Body></soap:Envelope>')
        assert tree.tag == "soap:Envelope"
        assert tree.attributes == {"xmlns:soap": Scalar("http://example.com/soap")}
        body = tree.children["soap:Body"]
        assert body.attributes == {"xml:lang": Scalar("en")}
        assert body.text == Scalar("hi")

    def test_default_namespace(self):
        tree = XmlCodec().parse('<root xmlns="urn:x"><item>1</item></root>')
        assert tree.tag == "root"
        assert tree.attributes == {"xmlns": Scalar("urn:x")}
        assert "item" in tree.children

    def test_comments_are_ignored(self):
        tree = XmlCodec().parse("<a><!-- note --><b>1</b></a>")
        assert list(tree.children) == ["b"]

    @pytest.mark.parametrize("text", [
        "<a><b></a>",
        "<a>",
        "<a></b>",
        "not xml at all",
        "<a/><b/>",
    ])
    def test_invalid_xml(self, text):
        with pytest.raises(FormatSyntaxError) as info:
            XmlCodec().parse(text)
        assert info.value.message == "Invalid XML format"
        assert info.value.line is not None

    def test_empty_content(self):
        with pytest.raises(EmptyContentError):
            XmlCodec().parse("")


# ═══════════════════════════════════════════════════════════════════
#  §5  XML SERIALIZATION AND ROUND-TRIPS
# ═══════════════════════════════════════════════════════════════════

def _dom_shape(elem):
    """(tag, attributes in order, trimmed text, children) of an ElementTree element."""
    return (elem.tag, list(elem.attrib.items()), (elem.text or "").strip(),
            [_dom_shape(child) for child in elem])


class TestXmlSerialize:

    def test_declaration_first(self):
        text = XmlCodec().serialize(XmlElement("a"))
        assert text == '<?xml version="1.0" encoding="UTF-8"?>\n<a/>'

    def test_escaping(self):
        assert escape("""<a & 'b' "c">""") == "&lt;a &amp; &#39;b&#39; &quot;c&quot;&gt;"
        el = XmlElement("a", {"q": Scalar('say "hi"')}, text=Scalar("1 < 2 & 3"))
        text = XmlCodec().serialize(el)
        assert '<a q="say &quot;hi&quot;">1 &lt; 2 &amp; 3</a>' in text
        assert XmlCodec().parse(text) == el

    def test_structure_is_indented(self):
        text = XmlCodec().serialize(XmlCodec().parse(DOC))
        assert text.splitlines()[1:] == [
            '<configuration version="2">',
            '  <server host="localhost" port="8080" secure="false"/>',
            '  <name>My Service</name>',
            '  <limits>',
            '    <limit kind="cpu">4</limit>',
            '    <limit kind="mem">512</limit>',
            '  </limits>',
            '  <empty/>',
            '</configuration>',
        ]

    @pytest.mark.parametrize("doc", [
        DOC,
        "<a/>",
        '<a x="1" y="two" z="true"><b/><b/><c>text</c></a>',
        "<root><x><y><z>deep</z></y></x></root>",
        '<p:root xmlns:p="urn:p"><p:child p:attr="1">v</p:child></p:root>',
        "<mixed>lead<child/></mixed>",
    ])
    def test_round_trip_is_dom_equivalent(self, doc):
        tree = XmlCodec().parse(doc)
        again = XmlCodec().serialize(tree)
        assert _dom_shape(ET.fromstring(again)) == _dom_shape(ET.fromstring(doc))
        assert XmlCodec().parse(again) == tree

    def test_attribute_order_preserved(self):
        doc = '<a zeta="1" alpha="2" mid="3"/>'
        again = XmlCodec().serialize(XmlCodec().parse(doc))
        assert list(ET.fromstring(again).attrib) == ["zeta", "alpha", "mid"]

    def test_legacy_object_without_kind(self):
        tree = from_plain({"@attributes": {"id": 7}, "name": "x",
                           "items": ["a", "b"], "nested": {"deep": True}})
        text = XmlCodec().serialize(tree)
        root = ET.fromstring(text)
        assert root.tag == "root"
        assert root.attrib == {"id": "7"}
        assert root.find("name").text == "x"
        assert [e.text for e in root.findall("items")] == ["a", "b"]
        assert root.find("nested/deep").text == "true"

    def test_xml_element_via_plain_round_trip(self):
        """to_plain's "@attributes"/"#text" shape serializes back to the same DOM."""
        tree = XmlCodec().parse('<a k="v">t</a>')
        plain = from_plain(to_plain(tree))
        text = XmlCodec().serialize(plain)
        root = ET.fromstring(text)
        assert root.attrib == {"k": "v"}
        assert root.text == "t"

    def test_cannot_serialize_scalar(self):
        with pytest.raises(SerializationError):
            XmlCodec().serialize(Scalar(1))


# ═══════════════════════════════════════════════════════════════════
#  §6  FORMAT DETECTION
# ═══════════════════════════════════════════════════════════════════

class TestResolve:

    @pytest.mark.parametrize("filename,kind", [
        ("app.json", FormatKind.JSON),
        ("APP.JSON", FormatKind.JSON),
        ("pom.xml", FormatKind.XML),
        (".env", FormatKind.ENV),
        ("prod.env", FormatKind.ENV),
        ("web.config", FormatKind.CONFIG),
        ("README", FormatKind.JSON),
        ("data.yaml", FormatKind.JSON),
        ("conf/prod.env", FormatKind.ENV),
    ])
    def test_by_extension(self, filename, kind):
        assert resolve(filename) == kind

    @pytest.mark.parametrize("content,kind", [
        ('{"a": 1}', FormatKind.JSON),
        ("  [1, 2]  ", FormatKind.JSON),
        ("<configuration/>", FormatKind.XML),
        ('<?xml version="1.0"?><a/>', FormatKind.XML),
        ("A=1\nB=2\n# comment\n", FormatKind.ENV),
        ("app.name = demo\nother line", FormatKind.ENV),
        ("{not json", FormatKind.CONFIG),
        ("just some words\nmore words\nX=1", FormatKind.CONFIG),
        ("", FormatKind.CONFIG),
    ])
    def test_config_sniffing(self, content, kind):
        assert resolve("web.config", content) == kind

    @pytest.mark.parametrize("filename", ["xml", "env", "config", "JSON", "settings.d/xml"])
    def test_bare_name_is_not_an_extension(self, filename):
        assert resolve(filename, "A=1\n") == FormatKind.JSON

    def test_env_threshold_is_inclusive(self):
        assert looks_like_env("A=1\nnot env")
        assert not looks_like_env("A=1\nno\nnope")
        assert not looks_like_env("# only comments\n\n")

    def test_format_metadata(self):
        assert FormatKind.CONFIG.mime_type == "application/xml"
        assert FormatKind.XML.mime_type == "application/xml"
        assert FormatKind.ENV.mime_type == "text/plain"
        assert FormatKind.JSON.mime_type == "application/json"
        assert FormatKind.ENV.extensions == (".env",)
        assert FormatKind.JSON.display_name == "JSON"


# ═══════════════════════════════════════════════════════════════════
#  §7  CODEC REGISTRY
# ═══════════════════════════════════════════════════════════════════

class TestRegistry:

    @pytest.mark.parametrize("key,codec_type", [
        ("json", JsonCodec), ("XML", XmlCodec), ("Env", EnvCodec),
        ("config", XmlCodec), (FormatKind.ENV, EnvCodec),
    ])
    def test_defaults(self, key, codec_type):
        assert isinstance(default_registry.create(key), codec_type)

    def test_fresh_codec_per_lookup(self):
        assert default_registry.create("json") is not default_registry.create("json")

    def test_unknown_key(self):
        with pytest.raises(UnsupportedFormatError) as info:
            default_registry.create("yaml")
        assert info.value.key == "yaml"
        assert isinstance(info.value, StructEditError)

    def test_register_is_case_insensitive(self):
        class UpperCodec(Codec):
            name = "upper"

            def parse(self, text):
                return Scalar(text.upper())

            def serialize(self, tree):
                return tree.value

        registry = CodecRegistry()
        registry.register("UPPER", UpperCodec)
        assert "upper" in registry
        assert registry.create("Upper").parse("abc") == Scalar("ABC")
        assert registry.keys() == ["upper"]

    def test_register_replaces(self):
        registry = CodecRegistry.with_defaults()
        registry.register("config", JsonCodec)
        assert isinstance(registry.create("config"), JsonCodec)
        # the shared default registry is unaffected
        assert isinstance(default_registry.create("config"), XmlCodec)

    def test_codec_for_sniffs_content(self):
        codec = default_registry.codec_for("app.config", "KEY=value\nOTHER=1")
        assert isinstance(codec, EnvCodec)
        assert codec.parse("KEY=value\nOTHER=1") == Object(
            {"KEY": Scalar("value"), "OTHER": Scalar(1)})

    def test_config_fallback_reads_xml(self):
        codec = default_registry.codec_for("web.config")
        tree = codec.parse('<configuration><appSettings/></configuration>')
        assert isinstance(tree, XmlElement)


# ═══════════════════════════════════════════════════════════════════
#  §8  SYNTAX VALIDATION
# ═══════════════════════════════════════════════════════════════════

class TestValidate:

    @pytest.mark.parametrize("kind,text", [
        ("json", '{"a": [1, 2]}'),
        ("xml", "<a><b/></a>"),
        ("config", "<a/>"),
        ("env", "A=1\n# x\n\nexport B='two words'"),
        (FormatKind.ENV, "A=1"),
    ])
    def test_valid(self, kind, text):
        assert validate(kind, text).valid

    def test_json_position(self):
        result = validate("json", '{\n  "a": 1,\n  "b": \n}')
        assert not result.valid
        assert result.line == 4
        assert result.column == 1

    def test_xml_position(self):
        result = validate("xml", "<a>\n  <b>\n</a>")
        assert not result.valid
        assert result.line == 3
        assert result.message

    def test_env_missing_equals(self):
        result = validate("env", "A=1\nBROKEN")
        assert not result.valid
        assert result.line == 2
        assert "=" in result.message

    def test_env_empty_key(self):
        result = validate("env", "  =value")
        assert (result.valid, result.line, result.column) == (False, 1, 3)

    def test_env_unterminated_quote(self):
        result = validate("env", 'A="open')
        assert (result.valid, result.line, result.column) == (False, 1, 3)
        assert "quote" in result.message.lower()

    def test_unsupported(self):
        result = validate("yaml", "a: 1")
        assert not result.valid
        assert result.message == "Unsupported file type: yaml"

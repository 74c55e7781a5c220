import pytest
from ui5lint_linter import LinterEngine, LinterOptions, Severity
from ui5lint_linter.document_linter import (
    HtmlPageLinter,
    ManifestLinter,
    XmlViewLinter,
    document_linter_for,
)
from ui5lint_linter.exceptions import DocumentSyntaxError
from ui5lint_linter.manifest import parse_manifest
from ui5lint_linter.markup import parse_embedded, parse_html, parse_xml
from ui5lint_linter.registry import RuleRegistry
from ui5lint_linter.rules import Trigger
from ui5lint_tree_sitter import JSParser


def positions(result):
    return [(m.rule_id, m.line, m.column) for m in result.messages]


class TestXmlReader:
    def test_namespaces_resolve_to_control_classes(self):
        source = (
            b'<mvc:View xmlns:mvc="sap.ui.core.mvc" xmlns="sap.m">'
            b"<Page><content><Button/></content></Page>"
            b"</mvc:View>"
        )

        elements = parse_xml(source)

        assert [e.name for e in elements] == ["mvc:View", "Page", "content", "Button"]
        assert [e.class_name for e in elements] == ["sap.ui.core.mvc.View", "sap.m.Page", None, "sap.m.Button"]

    def test_attribute_offsets_survive_angle_brackets_in_values(self):
        source = b'<View xmlns="sap.m"><Text text="{i18n>title}" maxLines="2"/></View>'

        text = parse_xml(source)[1]

        assert [a.name for a in text.attributes] == ["text", "maxLines"]
        assert [a.value for a in text.attributes] == ["{i18n>title}", "2"]
        for attribute in text.attributes:
            assert source[attribute.start_byte :].startswith(attribute.name.encode())
            assert source[attribute.value_start :].startswith(attribute.raw_value)

    def test_prefixed_attributes_carry_their_namespace(self):
        source = b'<View xmlns:core="sap.ui.core" core:require="{}" id="v"/>'

        [view] = parse_xml(source)

        require = view.attribute("require", "sap.ui.core")
        assert require is not None and require.is_module_map
        assert view.attribute("id").namespace is None

    def test_malformed_document_raises_with_position(self):
        with pytest.raises(DocumentSyntaxError) as info:
            parse_xml(b"<View>\n  <Page>\n</View>\n")

        assert info.value.line == 3
        assert info.value.reason.startswith("Invalid XML: mismatched tag")


class TestEmbeddedExpressions:
    def embedded(self, value: str):
        source = f'<Text xmlns="sap.m" text="{value}"/>'.encode()
        [element] = parse_xml(source)
        return source, parse_embedded(element.attribute("text"), source, JSParser())

    def test_simple_binding_paths_are_not_javascript(self):
        assert self.embedded("{i18n>title}")[1] is None
        assert self.embedded("{/name}")[1] is None
        assert self.embedded("plain text")[1] is None

    def test_binding_info_object_maps_back_into_the_attribute(self):
        source, embedded = self.embedded("{ path: '/a', formatter: '.format' }")

        assert embedded.expression.type == "object"
        assert not embedded.is_expression_binding
        offset = embedded.source_map.original_offset(embedded.expression.start_byte)
        assert source[offset:].startswith(b"{ path")

    def test_expression_binding_placeholders_become_identifiers(self):
        source, embedded = self.embedded("{= ${/count} > 0 }")

        assert embedded.is_expression_binding
        assert embedded.expression.type == "binary_expression"
        left = embedded.expression.child_by_field_name("left")
        assert left.type == "identifier"
        assert source[embedded.source_map.original_offset(left.start_byte) :].startswith(b"${/count}")


class TestHtmlReader:
    def test_elements_and_attributes_have_byte_offsets(self):
        source = '<p>ä</p>\n<script id="sap-ui-bootstrap"\n  data-sap-ui-async="true"></script>'.encode()

        elements = parse_html(source)

        script = elements[1]
        assert script.local_name == "script"
        assert source[script.start_byte :].startswith(b"script")
        option = script.attribute("data-sap-ui-async")
        assert option.value == "true"
        assert source[option.start_byte :].startswith(b"data-sap-ui-async")


class TestManifestReader:
    def test_entries_carry_paths_values_and_key_offsets(self):
        source = b'{\n  "sap.ui5": {"rootView": {"async": true}, "libs": [{"name": "x"}]}\n}'

        entries = parse_manifest(source, JSParser())

        assert [e.path for e in entries] == [
            "sap.ui5",
            "sap.ui5/rootView",
            "sap.ui5/rootView/async",
            "sap.ui5/libs",
            "sap.ui5/libs/0/name",
        ]
        async_entry = entries[2]
        assert async_entry.value is True
        assert source[async_entry.start_byte :].startswith(b'"async"')
        assert source[async_entry.value_start :].startswith(b"true")

    def test_invalid_json_raises_with_position(self):
        with pytest.raises(DocumentSyntaxError) as info:
            parse_manifest(b'{\n  "a": \n}', JSParser())

        assert (info.value.line, info.value.column) == (3, 1)
        assert info.value.reason == "Invalid JSON: Expecting value"

    def test_non_object_root_has_no_entries(self):
        assert parse_manifest(b"[1, 2]", JSParser()) == []


def test_files_are_routed_to_their_linter():
    assert document_linter_for("webapp/view/Main.view.xml") is XmlViewLinter
    assert document_linter_for("webapp/index.HTML") is HtmlPageLinter
    assert document_linter_for("webapp/manifest.json") is ManifestLinter
    assert document_linter_for("webapp/Component.js") is None
    assert document_linter_for("webapp/i18n.json") is None


def test_markup_and_manifest_triggers_have_listeners():
    registry = RuleRegistry()

    def ids(trigger):
        return {r.rule_id for r in registry.rules_for(trigger)}

    assert ids(Trigger.MARKUP_ELEMENT) == {"no-deprecated-api", "no-deprecated-library", "no-sync-loading"}
    assert ids(Trigger.BINDING_EXPRESSION) == {"no-deprecated-api", "no-deprecated-module", "no-globals"}
    assert ids(Trigger.MANIFEST_ENTRY) == {"no-deprecated-api", "no-deprecated-library", "no-sync-loading"}


VIEW = """\
<mvc:View xmlns:mvc="sap.ui.core.mvc" xmlns="sap.m">
    <Page title="Home" navButtonText="Back">
        <content>
            <MessagePage text="Nothing here"/>
        </content>
    </Page>
</mvc:View>
"""


def test_deprecated_controls_and_properties_in_views(lint_document):
    result = lint_document(VIEW, "Main.view.xml")

    assert positions(result) == [("no-deprecated-api", 2, 24), ("no-deprecated-api", 4, 14)]
    prop, control = result.messages
    assert prop.message == (
        "Use of deprecated property 'navButtonText' of class 'sap.m.Page'. "
        "Deprecated as of version 1.20. The navigation button has no text, use 'navButtonTooltip' instead"
    )
    assert control.message == (
        "Use of deprecated class 'sap.m.MessagePage'. "
        "Deprecated as of version 1.112. Use 'sap.m.IllustratedMessage' instead"
    )
    assert result.coverage is None


REQUIRE_VIEW = """\
<mvc:View xmlns:mvc="sap.ui.core.mvc" xmlns:core="sap.ui.core" xmlns="sap.m"
    core:require="{ Storage: 'jquery.sap.storage' }">
    <Text text="{ path: '/count', type: 'sap.ui.model.type.Integer', formatter: '.format' }"/>
</mvc:View>
"""


def test_required_modules_and_global_binding_types(lint_document):
    result = lint_document(REQUIRE_VIEW, "Main.view.xml")

    assert positions(result) == [("no-deprecated-module", 2, 30), ("no-globals", 3, 41)]
    module, global_type = result.messages
    assert module.message.startswith("Import of deprecated module 'jquery.sap.storage'. Deprecated as of version 1.90")
    assert global_type.message == "Access of global variable 'sap' (sap.ui.model.type.Integer)"


def test_expression_binding_reports_at_exact_offsets(lint_document):
    view = """\
<mvc:View xmlns:mvc="sap.ui.core.mvc" xmlns="sap.m">
    <Text text="{= sap.ui.getCore() }"/>
</mvc:View>
"""
    result = lint_document(view, "Main.view.xml")

    assert positions(result) == [("no-deprecated-api", 2, 27), ("no-globals", 2, 20)]
    assert result.messages[0].message.startswith("Call to deprecated function 'sap.ui.getCore'.")
    assert result.messages[1].message == "Access of global variable 'sap' (sap.ui.getCore)"


def test_expression_binding_with_entities_reports_at_value_start(lint_document):
    view = """\
<mvc:View xmlns:mvc="sap.ui.core.mvc" xmlns="sap.m">
    <Button enabled="{= ${/items}.length > 0 &amp;&amp; sap.ui.getCore().isReady() }"/>
</mvc:View>
"""
    result = lint_document(view, "Main.view.xml")

    assert positions(result) == [("no-deprecated-api", 2, 22), ("no-globals", 2, 22)]


def test_malformed_view_is_a_parsing_error(lint_document):
    result = lint_document("<mvc:View>\n  <Page>\n</mvc:View>\n", "Broken.view.xml")

    [message] = result.messages
    assert message.rule_id == "parsing-error"
    assert message.fatal
    assert message.line == 3
    assert result.fatal_error_count == 1


MANIFEST = """\
{
    "sap.app": {"id": "my.app"},
    "sap.ui5": {
        "rootView": {"viewName": "my.app.view.App", "type": "XML"},
        "dependencies": {
            "libs": {"sap.m": {}, "sap.ui.commons": {}}
        },
        "resources": {"js": [{"uri": "lib/legacy.js"}]},
        "models": {
            "": {"type": "sap.ui.model.odata.ODataModel", "dataSource": "main"}
        },
        "routing": {"config": {"async": false}}
    }
}
"""


def test_deprecated_manifest_settings(lint_document):
    result = lint_document(MANIFEST, "manifest.json")

    assert [(m.rule_id, m.line, m.column, m.severity) for m in result.messages] == [
        ("no-sync-loading", 4, 9, Severity.WARNING),
        ("no-deprecated-library", 6, 35, Severity.ERROR),
        ("no-deprecated-api", 8, 23, Severity.ERROR),
        ("no-deprecated-api", 10, 26, Severity.ERROR),
        ("no-sync-loading", 12, 32, Severity.ERROR),
    ]
    messages = [m.message for m in result.messages]
    assert messages[0] == "'sap.ui5/rootView' does not set 'async: true' and may be loaded synchronously"
    assert messages[1].startswith("Use of deprecated library 'sap.ui.commons'. Deprecated as of version 1.38")
    assert messages[2].startswith("Use of deprecated manifest setting 'sap.ui5/resources/js'.")
    assert messages[3].startswith("Use of deprecated class 'sap.ui.model.odata.ODataModel'.")
    assert messages[4] == "Synchronous loading configured by 'sap.ui5/routing/config/async'"


def test_asynchronous_root_view_is_clean(lint_document):
    result = lint_document('{"sap.ui5": {"rootView": {"viewName": "v", "async": true}}}', "manifest.json")

    assert result.messages == []


def test_invalid_manifest_is_a_parsing_error(lint_document):
    result = lint_document('{\n  "a": \n}', "manifest.json")

    [message] = result.messages
    assert (message.rule_id, message.line, message.column) == ("parsing-error", 3, 1)
    assert message.message == "Invalid JSON: Expecting value"


PAGE = """\
<!DOCTYPE html>
<html>
<head>
    <script id="sap-ui-bootstrap" src="resources/sap-ui-core.js"
        data-sap-ui-libs="sap.m, sap.ui.commons"
        data-sap-ui-areas="content">
    </script>
</head>
</html>
"""


def test_bootstrap_parameters_libraries_and_sync_loading(lint_document):
    result = lint_document(PAGE, "index.html")

    assert positions(result) == [
        ("no-deprecated-api", 6, 9),
        ("no-deprecated-library", 5, 34),
        ("no-sync-loading", 4, 6),
    ]
    assert result.messages[0].message.startswith("Use of deprecated bootstrap parameter 'data-sap-ui-areas'.")
    assert result.messages[2].severity is Severity.ERROR


def test_asynchronous_bootstrap_is_clean(lint_document):
    page = '<script id="sap-ui-bootstrap" src="sap-ui-core.js" data-sap-ui-async="true"></script>'

    assert lint_document(page, "index.html").messages == []


def test_ignored_rules_are_not_run_on_documents(lint_document):
    result = lint_document(MANIFEST, "manifest.json", ignore=["no-sync-loading", "no-deprecated-api"])

    assert [m.rule_id for m in result.messages] == ["no-deprecated-library"]


def test_documents_are_linted_alongside_scripts(tmp_path):
    (tmp_path / "webapp" / "view").mkdir(parents=True)
    (tmp_path / "webapp" / "view" / "Main.view.xml").write_text(VIEW)
    (tmp_path / "webapp" / "manifest.json").write_text(MANIFEST)
    (tmp_path / "webapp" / "Component.js").write_text("sap.ui.getCore();\n")

    results = LinterEngine(LinterOptions(jobs=2)).lint_files([tmp_path])

    counts = {r.file_path.replace("\\", "/").split("webapp/")[1]: r.error_count for r in results}
    assert counts == {"Component.js": 2, "manifest.json": 4, "view/Main.view.xml": 2}


def test_document_analysis_can_time_out(tmp_path):
    (tmp_path / "Main.view.xml").write_text(VIEW)

    [result] = LinterEngine(LinterOptions(file_timeout=1e-9)).lint_files([tmp_path / "Main.view.xml"])

    assert result.fatal_error_count == 1
    assert result.messages[-1].rule_id == "internal-error"
    assert result.messages[-1].message.startswith("Analysis cancelled: timeout")

"""Tests for the import patcher."""

from __future__ import annotations

import re
from pathlib import Path

import pytest

from nixboot.core.exceptions import DocumentIOError, MalformedDocumentError
from nixboot.domain.patcher import (
    PatchOutcome,
    apply_import,
    contains_reference,
    ensure_import,
    is_balanced,
    mask_source,
)
from nixboot.infrastructure.files import LocalDocumentStore

from conftest import NIXOS_CONFIGURATION, FakeStore

FRAGMENT = "./bootstrap-module.nix"


def _entries(text: str) -> list[str]:
    """Entries of the first imports list, assuming plain path entries"""
    body = re.search(r"imports\s*=\s*\[(.*?)\]", mask_source(text), re.DOTALL).group(1)
    return body.split()


class TestExamples:
    """Scenarios that define the patcher's behaviour."""

    def test_appends_to_existing_list(self):
        result = ensure_import("{ imports = [ ./a.nix ]; }", "./b.nix")
        assert result.text == "{ imports = [ ./a.nix ./b.nix ]; }"
        assert result.outcome is PatchOutcome.APPENDED

    def test_creates_list_when_absent(self):
        result = ensure_import("{ }", "./b.nix")
        assert result.text == "{ imports = [ ./b.nix ]; }"
        assert result.outcome is PatchOutcome.CREATED

    def test_already_present_is_untouched(self):
        result = ensure_import("{ imports = [ ./b.nix ]; }", "./b.nix")
        assert result.text == "{ imports = [ ./b.nix ]; }"
        assert result.outcome is PatchOutcome.ALREADY_PRESENT
        assert not result.changed


class TestEnsureImport:
    """ensure_import() on realistic documents."""

    def test_generated_nixos_configuration(self):
        result = ensure_import(NIXOS_CONFIGURATION, FRAGMENT)
        expected = NIXOS_CONFIGURATION.replace(
            "      ./hardware-configuration.nix\n",
            "      ./hardware-configuration.nix\n      ./bootstrap-module.nix\n",
        )
        assert result.outcome is PatchOutcome.APPENDED
        assert result.text == expected

    def test_function_header_is_skipped(self):
        text = '{ config, pkgs, ... }:\n\n{\n  networking.hostName = "x";\n}\n'
        result = ensure_import(text, "./b.nix")
        assert result.outcome is PatchOutcome.CREATED
        assert result.text == (
            "{ config, pkgs, ... }:\n\n{\n"
            "  imports = [\n    ./b.nix\n  ];\n"
            '  networking.hostName = "x";\n}\n'
        )

    def test_args_pattern_header_is_skipped(self):
        text = "args@{ pkgs, ... }:\n{\n  x = 1;\n}\n"
        result = ensure_import(text, "./b.nix")
        assert result.text.startswith("args@{ pkgs, ... }:\n{\n  imports = [\n")

    def test_let_binding_is_skipped(self):
        text = "let\n  user = { name = \"a\"; };\nin\n{\n  x = 1;\n}\n"
        result = ensure_import(text, "./b.nix")
        assert "in\n{\n  imports = [\n    ./b.nix\n  ];\n  x = 1;" in result.text
        assert 'user = { name = "a"; };' in result.text

    def test_let_binding_with_call_argument_is_skipped(self):
        text = (
            "{ config, pkgs, ... }:\n\n"
            "let\n"
            "  unstable = import <nixos-unstable> { config = config.nixpkgs.config; };\n"
            "in\n"
            "{\n"
            "  environment.systemPackages = [ unstable.hello ];\n"
            "}\n"
        )
        result = ensure_import(text, FRAGMENT)

        assert result.outcome is PatchOutcome.CREATED
        assert result.text == text.replace(
            "in\n{\n",
            "in\n{\n  imports = [\n    ./bootstrap-module.nix\n  ];\n",
        )
        assert "import <nixos-unstable> { config = config.nixpkgs.config; };" in result.text

    def test_let_bound_function_is_skipped(self):
        text = "let f = a: { }; in\n{\n  x = 1;\n}\n"
        result = ensure_import(text, "./b.nix")
        assert result.text == "let f = a: { }; in\n{\n  imports = [\n    ./b.nix\n  ];\n  x = 1;\n}\n"

    def test_nested_let_in_binding(self):
        text = "let\n  a = let b = { }; in b;\nin\n{\n  x = 1;\n}\n"
        result = ensure_import(text, "./b.nix")
        assert "let b = { }; in b;" in result.text
        assert "in\n{\n  imports = [\n    ./b.nix\n  ];\n  x = 1;" in result.text

    def test_with_prefix_is_skipped(self):
        text = "{ pkgs, ... }:\nwith pkgs;\n{\n  environment.systemPackages = [ vim ];\n}\n"
        result = ensure_import(text, "./b.nix")
        assert "with pkgs;\n{\n  imports = [\n    ./b.nix\n  ];\n" in result.text

    def test_rec_attribute_set(self):
        result = ensure_import("rec { x = 1; }", "./b.nix")
        assert result.text == "rec { imports = [ ./b.nix ]; x = 1; }"

    def test_dollar_escape_in_string(self):
        text = '{\n  imports = [ ./a.nix ];\n  s = "$${";\n}\n'
        result = ensure_import(text, "./b.nix")
        assert result.text == '{\n  imports = [ ./a.nix ./b.nix ];\n  s = "$${";\n}\n'

    def test_crlf_list_keeps_line_endings(self):
        text = "{\r\n  imports = [\r\n    ./a.nix\r\n  ];\r\n}\r\n"
        result = ensure_import(text, "./b.nix")
        assert result.text == "{\r\n  imports = [\r\n    ./a.nix\r\n    ./b.nix\r\n  ];\r\n}\r\n"

    def test_crlf_new_list_keeps_line_endings(self):
        result = ensure_import("{\r\n  x = 1;\r\n}\r\n", "./b.nix")
        assert result.text == "{\r\n  imports = [\r\n    ./b.nix\r\n  ];\r\n  x = 1;\r\n}\r\n"
        assert result.text.count("\n") == result.text.count("\r\n")

    def test_content_on_brace_line_moves_down(self):
        text = "{ x = 1;\n  y = 2;\n}\n"
        result = ensure_import(text, "./b.nix")
        assert result.text == "{\n  imports = [\n    ./b.nix\n  ];\n  x = 1;\n  y = 2;\n}\n"

    def test_empty_single_line_list(self):
        result = ensure_import("{ imports = []; }", "./b.nix")
        assert result.text == "{ imports = [ ./b.nix ]; }"

    def test_empty_multi_line_list(self):
        result = ensure_import("{\n  imports = [\n  ];\n}\n", "./b.nix")
        assert result.text == "{\n  imports = [\n    ./b.nix\n  ];\n}\n"

    def test_list_opened_on_same_line_as_first_entry(self):
        text = "{\n  imports = [ ./a.nix\n    ./c.nix ];\n}\n"
        result = ensure_import(text, "./b.nix")
        assert result.text == "{\n  imports = [ ./a.nix\n    ./c.nix\n    ./b.nix ];\n}\n"

    def test_top_level_list_preferred_over_nested(self):
        text = (
            "{\n"
            "  home-manager.users.alice = {\n"
            "    imports = [ ./home.nix ];\n"
            "  };\n"
            "  imports = [ ./hardware.nix ];\n"
            "}\n"
        )
        result = ensure_import(text, "./b.nix")
        assert "imports = [ ./home.nix ];" in result.text
        assert "imports = [ ./hardware.nix ./b.nix ];" in result.text

    def test_imports_in_comment_is_not_a_list(self):
        text = "{\n  # imports = [ ./old.nix ];\n  x = 1;\n}\n"
        result = ensure_import(text, "./b.nix")
        assert result.outcome is PatchOutcome.CREATED
        assert "# imports = [ ./old.nix ];" in result.text

    def test_similar_attribute_names_are_ignored(self):
        text = "{\n  extraimports = [ ./x.nix ];\n  foo.imports = [ ./y.nix ];\n}\n"
        result = ensure_import(text, "./b.nix")
        assert result.outcome is PatchOutcome.CREATED

    def test_brackets_inside_strings(self):
        text = '{\n  imports = [ ./a.nix ];\n  s = "]; {";\n}\n'
        result = ensure_import(text, "./b.nix")
        assert "imports = [ ./a.nix ./b.nix ];" in result.text
        assert 's = "]; {";' in result.text

    def test_reference_is_stripped(self):
        result = ensure_import("{ }", "  ./b.nix \n")
        assert result.text == "{ imports = [ ./b.nix ]; }"


class TestPresenceDetection:
    """contains_reference() and the ALREADY_PRESENT branch."""

    def test_mention_in_comment_counts(self):
        text = "{\n  # ./b.nix is imported by hand\n}\n"
        result = ensure_import(text, "./b.nix")
        assert result.outcome is PatchOutcome.ALREADY_PRESENT
        assert result.text == text

    def test_absolute_path_counts(self):
        assert contains_reference("{ imports = [ /etc/nixos/b.nix ]; }", "./b.nix")

    def test_longer_name_does_not_count(self):
        assert not contains_reference("{ imports = [ ./ab.nix ]; }", "./b.nix")
        assert not contains_reference("{ imports = [ ./b.nix.bak ]; }", "./b.nix")
        result = ensure_import("{ imports = [ ./ab.nix ]; }", "./b.nix")
        assert result.text == "{ imports = [ ./ab.nix ./b.nix ]; }"

    def test_empty_reference_rejected(self):
        with pytest.raises(ValueError):
            contains_reference("{ }", "./")


class TestProperties:
    """Idempotence, order preservation and balance."""

    DOCUMENTS = [
        "{ }",
        "{ imports = [ ./a.nix ]; }",
        "{ imports = [ ./a.nix ./c.nix ./d.nix ]; }",
        "{\n  imports = [\n    ./a.nix\n    ./c.nix\n  ];\n}\n",
        NIXOS_CONFIGURATION,
        '{ config, ... }:\n{\n  x = "${config.y}";\n}\n',
    ]

    @pytest.mark.parametrize("document", DOCUMENTS)
    def test_second_pass_is_a_no_op(self, document):
        first = ensure_import(document, "./b.nix")
        second = ensure_import(first.text, "./b.nix")
        assert second.outcome is PatchOutcome.ALREADY_PRESENT
        assert second.text == first.text

    @pytest.mark.parametrize("document", DOCUMENTS)
    def test_output_stays_balanced(self, document):
        assert is_balanced(document)
        assert is_balanced(ensure_import(document, "./b.nix").text)

    @pytest.mark.parametrize("document", [
        "{ imports = [ ./a.nix ./c.nix ./d.nix ]; }",
        "{\n  imports = [\n    ./a.nix\n    ./c.nix\n  ];\n}\n",
    ])
    def test_existing_entries_keep_their_order(self, document):
        before = _entries(document)
        after = _entries(ensure_import(document, "./b.nix").text)
        assert after[:len(before)] == before
        assert after[len(before):] == ["./b.nix"]

    def test_insertion_leaves_the_rest_alone(self):
        document = "{\n  a = 1;\n  b = [ 2 ];\n}\n"
        result = ensure_import(document, "./b.nix")
        block = "\n  imports = [\n    ./b.nix\n  ];"
        assert result.text.replace(block, "", 1) == document


class TestMalformed:
    """Documents the patcher refuses to edit."""

    def test_no_attribute_set(self):
        with pytest.raises(MalformedDocumentError):
            ensure_import("pkgs: pkgs.hello", "./b.nix")

    def test_only_a_function_header(self):
        with pytest.raises(MalformedDocumentError):
            ensure_import("{ pkgs, ... }: pkgs.hello", "./b.nix")

    def test_top_level_call(self):
        with pytest.raises(MalformedDocumentError):
            ensure_import("import ./common.nix { hostName = \"x\"; }", "./b.nix")

    def test_unbalanced_document(self):
        with pytest.raises(MalformedDocumentError):
            ensure_import("{ imports = [ ./a.nix ; }", "./b.nix")

    def test_missing_closing_brace(self):
        with pytest.raises(MalformedDocumentError):
            ensure_import("{\n  x = 1;\n", "./b.nix")


class TestApplyImport:
    """apply_import() against document stores."""

    def test_writes_once(self):
        path = Path("/etc/nixos/configuration.nix")
        store = FakeStore({path: "{ }"})

        first = apply_import(store, path, "./b.nix")
        second = apply_import(store, path, "./b.nix")

        assert first.outcome is PatchOutcome.CREATED
        assert second.outcome is PatchOutcome.ALREADY_PRESENT
        assert store.writes == [path]
        assert store.files[path] == "{ imports = [ ./b.nix ]; }"

    def test_malformed_document_is_not_written(self):
        path = Path("/etc/nixos/configuration.nix")
        store = FakeStore({path: "{ x = [ ; }"})
        with pytest.raises(MalformedDocumentError):
            apply_import(store, path, "./b.nix")
        assert store.writes == []
        assert store.files[path] == "{ x = [ ; }"

    def test_local_file(self, tmp_path: Path):
        path = tmp_path / "configuration.nix"
        path.write_text(NIXOS_CONFIGURATION)

        result = apply_import(LocalDocumentStore(), path, FRAGMENT)

        assert result.outcome is PatchOutcome.APPENDED
        assert path.read_text() == result.text
        assert FRAGMENT in path.read_text()

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(DocumentIOError):
            apply_import(LocalDocumentStore(), tmp_path / "missing.nix", FRAGMENT)

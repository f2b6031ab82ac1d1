import pytest

from codeflow.languages import DEFAULT_LANGUAGE, get_editor_syntax, get_language, get_language_label


@pytest.mark.parametrize("filename, language", [
    ("main.py", "python"),
    ("App.TSX", "typescript"),
    ("lib.rs", "rust"),
    ("a.b.cpp", "cpp"),
    ("Program.cs", "csharp"),
    ("server.go", "go"),
])
def test_known_extensions(filename, language):
    assert get_language(filename) == language


@pytest.mark.parametrize("filename", ["README", "notes.txt", "", None, "archive.tar.gz"])
def test_unknown_defaults_to_javascript(filename):
    assert get_language(filename) == DEFAULT_LANGUAGE == "javascript"


def test_labels():
    assert get_language_label("cpp") == "C++"
    assert get_language_label("csharp") == "C#"
    assert get_language_label("cobol") == "cobol"


def test_editor_syntax_only_for_shipped_grammars():
    assert get_editor_syntax("python") == "python"
    assert get_editor_syntax("typescript") == "javascript"
    assert get_editor_syntax("kotlin") is None

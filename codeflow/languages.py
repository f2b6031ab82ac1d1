"""Filename extension → execution language."""

DEFAULT_LANGUAGE = "javascript"

# Closed table; anything else runs as DEFAULT_LANGUAGE.
EXTENSION_LANGUAGES = {
    "py": "python",
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "go": "go",
    "rs": "rust",
    "c": "c",
    "cpp": "cpp",
    "cc": "cpp",
    "cxx": "cpp",
    "java": "java",
    "rb": "ruby",
    "php": "php",
    "swift": "swift",
    "kt": "kotlin",
    "cs": "csharp",
}

LANGUAGE_LABELS = {
    "javascript": "JavaScript",
    "typescript": "TypeScript",
    "python": "Python",
    "java": "Java",
    "c": "C",
    "cpp": "C++",
    "go": "Go",
    "rust": "Rust",
    "ruby": "Ruby",
    "php": "PHP",
    "swift": "Swift",
    "kotlin": "Kotlin",
    "csharp": "C#",
}

# TextArea syntax names, where Textual ships a grammar for the language
EDITOR_SYNTAX = {
    "python": "python",
    "javascript": "javascript",
    "typescript": "javascript",
    "go": "go",
    "rust": "rust",
    "java": "java",
}


def get_language(filename):
    """Map a filename to its execution language."""
    if not filename or "." not in filename:
        return DEFAULT_LANGUAGE
    ext = filename.rsplit(".", 1)[1].lower()
    return EXTENSION_LANGUAGES.get(ext, DEFAULT_LANGUAGE)


def get_language_label(language):
    return LANGUAGE_LABELS.get(language, language)


def get_editor_syntax(language):
    return EDITOR_SYNTAX.get(language)

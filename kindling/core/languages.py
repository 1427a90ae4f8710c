"""Unified language registry for all Kindling components.

Single source of truth for extension to language mappings used by:
- Chunk metadata (language names stored with each chunk)
- Boundary detector selection (brace, indentation or no block detection)

To add a new language, add a single entry to LANGUAGE_REGISTRY.
"""

from dataclasses import dataclass
from typing import Final, Literal

BlockStyle = Literal["brace", "indent", "none"]


@dataclass(frozen=True)
class LanguageInfo:
    """Information about a programming language.

    Attributes:
        name: Language name stored in chunk metadata (e.g., "typescript").
        block_style: How declaration bodies are delimited: "brace" for braces,
            "indent" for indentation (Ruby bodies also end with ``end``),
            "none" where no declarations are detected.
    """

    name: str
    block_style: BlockStyle = "brace"


# Master registry mapping file extensions to language info.
LANGUAGE_REGISTRY: Final[dict[str, LanguageInfo]] = {
    # JavaScript/TypeScript
    ".ts": LanguageInfo(name="typescript"),
    ".tsx": LanguageInfo(name="typescript"),
    ".js": LanguageInfo(name="javascript"),
    ".jsx": LanguageInfo(name="javascript"),
    ".vue": LanguageInfo(name="vue"),
    # JVM
    ".java": LanguageInfo(name="java"),
    ".kt": LanguageInfo(name="kotlin"),
    ".scala": LanguageInfo(name="scala"),
    # Systems
    ".go": LanguageInfo(name="go"),
    ".rs": LanguageInfo(name="rust"),
    ".c": LanguageInfo(name="c"),
    ".cpp": LanguageInfo(name="cpp"),
    ".cs": LanguageInfo(name="csharp"),
    ".swift": LanguageInfo(name="swift"),
    ".php": LanguageInfo(name="php"),
    # Indentation or keyword delimited
    ".py": LanguageInfo(name="python", block_style="indent"),
    ".rb": LanguageInfo(name="ruby", block_style="indent"),
    ".sh": LanguageInfo(name="shell", block_style="none"),
    ".pl": LanguageInfo(name="perl"),
    ".pm": LanguageInfo(name="perl"),
}

# Default for unknown extensions
_DEFAULT_LANGUAGE = LanguageInfo(name="plaintext", block_style="none")


def get_suffix(path: str) -> str:
    """Return the lowercase extension of a path, including the dot.

    Dotfiles such as ``.bashrc`` have no extension.
    """
    name = path.rsplit("/", 1)[-1]
    dot = name.rfind(".")
    if dot <= 0:
        return ""
    return name[dot:].lower()


def get_language_info(path: str) -> LanguageInfo:
    """Look up language info for a file path. Defaults to plaintext."""
    return LANGUAGE_REGISTRY.get(get_suffix(path), _DEFAULT_LANGUAGE)


def get_language_name(path: str) -> str:
    """Get the language name stored in chunk metadata for a file path.

    Args:
        path: Repository-relative file path.

    Returns:
        Language name (e.g., "typescript", "python"). Defaults to "plaintext".
    """
    return get_language_info(path).name

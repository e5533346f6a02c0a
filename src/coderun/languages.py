"""
Language profiles.

Every supported language is described by a single :class:`LanguageProfile`
entry in :data:`LANGUAGES`.  A profile says which extension the generated
source file gets, whether a build step runs before the program, and the
exact argv used for building and running.  Nothing else in the package
branches on the language name, so adding a language means adding one entry
here.

Interpreted languages (and ``go run``, which compiles behind the scenes) run
the source file directly.  Compiled languages build an executable next to
the source file, named after it without the extension, and run that.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .errors import UnsupportedLanguage


@dataclass(frozen=True)
class LanguageProfile:
    """How to build and run source code in one language.

    Attributes
    ----------
    id: str
        Identifier used by clients, e.g. ``"python"``.
    source_extension: str
        Extension (without the dot) of the generated source file.
    run_argv: tuple of str
        Command prefix for running.  The source file (or the artifact for
        compiled languages) is appended as the last argument.
    build_argv: tuple of str, optional
        Compiler prefix.  When set the language has a build step and the
        command becomes ``build_argv + (source, "-o", artifact)``.
    """

    id: str
    source_extension: str
    run_argv: Tuple[str, ...] = ()
    build_argv: Optional[Tuple[str, ...]] = None

    @property
    def has_build_step(self) -> bool:
        return self.build_argv is not None

    def source_name(self) -> str:
        return f"code.{self.source_extension}"

    def artifact_path(self, source_path: Path) -> Path:
        return Path(source_path).with_suffix("")

    def build_command(self, source_path: Path) -> List[str]:
        if self.build_argv is None:
            raise ValueError(f"{self.id} has no build step")
        artifact = self.artifact_path(source_path)
        return [*self.build_argv, str(source_path), "-o", str(artifact)]

    def run_command(self, path: Path) -> List[str]:
        # Compiled artifacts are executed directly.
        return [*self.run_argv, str(path)]


LANGUAGES: Dict[str, LanguageProfile] = {
    profile.id: profile
    for profile in (
        LanguageProfile("python", "py", run_argv=("python3",)),
        LanguageProfile("javascript", "js", run_argv=("node",)),
        LanguageProfile("typescript", "ts", run_argv=("npx", "ts-node")),
        LanguageProfile("go", "go", run_argv=("go", "run")),
        LanguageProfile("php", "php", run_argv=("php",)),
        LanguageProfile("rust", "rs", build_argv=("rustc",)),
        LanguageProfile("cpp", "cpp", build_argv=("g++",)),
    )
}


def supported_languages() -> List[str]:
    return list(LANGUAGES)


def lookup(language_id: str) -> LanguageProfile:
    """Return the profile for ``language_id`` or raise ``UnsupportedLanguage``."""
    try:
        return LANGUAGES[language_id]
    except KeyError:
        raise UnsupportedLanguage(language_id) from None

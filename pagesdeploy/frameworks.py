"""Static-site framework presets and detection."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

UNKNOWN = "unknown"
DEFAULT_BUILD_DIR = "out"
DEFAULT_BUILD_COMMAND = "npm run build"


@dataclass(frozen=True)
class FrameworkPreset:
    name: str
    package: str
    build_command: str
    build_dir: str
    config_files: tuple[str, ...] = ()


PRESETS: dict[str, FrameworkPreset] = {
    p.name: p
    for p in (
        FrameworkPreset(
            "nextjs", "next", "npm run build", "out", ("next.config.js", "next.config.mjs")
        ),
        FrameworkPreset(
            "vite", "vite", "npm run build", "dist", ("vite.config.js", "vite.config.ts")
        ),
        FrameworkPreset("astro", "astro", "npm run build", "dist", ("astro.config.mjs",)),
        FrameworkPreset("vue", "vue", "npm run build", "dist", ("vue.config.js",)),
        FrameworkPreset("angular", "@angular/core", "ng build --prod", "dist", ("angular.json",)),
        FrameworkPreset("svelte", "svelte", "npm run build", "public", ("svelte.config.js",)),
        FrameworkPreset(
            "nuxt", "nuxt", "npm run generate", "dist", ("nuxt.config.js", "nuxt.config.ts")
        ),
        FrameworkPreset("react", "react", "npm run build", "build"),
    )
}

# Manifest dependency prefixes, checked in order when no config file matches.
_MANIFEST_MARKERS: tuple[tuple[str, str], ...] = (
    ("next", "nextjs"),
    ("vite", "vite"),
    ("@astrojs", "astro"),
    ("astro", "astro"),
    ("nuxt", "nuxt"),
    ("vue", "vue"),
    ("@angular", "angular"),
    ("svelte", "svelte"),
    ("react", "react"),
)


def read_manifest(path: Path) -> dict:
    """Parse a ``package.json``; an unreadable, undecodable or malformed file yields ``{}``."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):  # JSONDecodeError, UnicodeDecodeError
        return {}
    return data if isinstance(data, dict) else {}


def declared_dependencies(manifest: dict) -> set[str]:
    deps: set[str] = set()
    for key in ("dependencies", "devDependencies", "peerDependencies"):
        section = manifest.get(key)
        if isinstance(section, dict):
            deps.update(section)
    return deps


def detect_framework(project_root: Path, manifest_name: str = "package.json") -> str:
    """Return the preset name for *project_root*, or ``"unknown"``."""
    for preset in PRESETS.values():
        if any((project_root / f).is_file() for f in preset.config_files):
            return preset.name

    manifest_path = project_root / manifest_name
    if not manifest_path.is_file():
        return UNKNOWN
    deps = declared_dependencies(read_manifest(manifest_path))
    for prefix, name in _MANIFEST_MARKERS:
        if any(dep == prefix or dep.startswith(f"{prefix}/") for dep in deps):
            return name
    return UNKNOWN


def framework_package(framework: str) -> str | None:
    preset = PRESETS.get(framework)
    return preset.package if preset else None


def default_build_dir(framework: str) -> str:
    preset = PRESETS.get(framework)
    return preset.build_dir if preset else DEFAULT_BUILD_DIR


def default_build_command(framework: str) -> str:
    preset = PRESETS.get(framework)
    return preset.build_command if preset else DEFAULT_BUILD_COMMAND

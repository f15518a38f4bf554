"""Find the packages whose documentation should be mirrored.

Packages come from ``package.json`` files below a root directory. Scan and
exclude paths are glob patterns relative to that root.
"""

import json
import re
from fnmatch import fnmatchcase
from pathlib import Path

from loguru import logger

from docs_fetcher.config import FetchConfig

_VERSION_PREFIX_RE = re.compile(r"^[^0-9]*")


def _matches_path(relative: str, pattern: str) -> bool:
    pattern = pattern.lstrip("/")
    if fnmatchcase(relative, pattern):
        return True
    # "**/node_modules/**" must also match a node_modules at the root
    return pattern.startswith("**/") and fnmatchcase(relative, pattern[3:])


def _is_excluded(relative: str, exclude_paths) -> bool:
    return any(_matches_path(relative, pattern) for pattern in exclude_paths)


def find_packages(root_dir: str | Path, scan_paths, exclude_paths) -> list[dict]:
    """Read every ``package.json`` matched by *scan_paths* under *root_dir*.

    Returns ``{name, version, path}`` dicts. Files without a name, with
    invalid JSON, or under an excluded path are skipped.
    """
    root = Path(root_dir).expanduser().resolve()
    packages: list[dict] = []
    seen_files: set[Path] = set()

    for pattern in scan_paths:
        pattern = pattern.lstrip("/")
        matches = sorted(p for p in root.glob(pattern) if p.is_file())
        logger.debug(f"Found {len(matches)} files for pattern {pattern}")

        for file in matches:
            if file in seen_files:
                continue
            seen_files.add(file)

            relative = file.relative_to(root).as_posix()
            if _is_excluded(relative, exclude_paths):
                continue

            try:
                content = json.loads(file.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.warning(f"Error processing {file}: {e}")
                continue

            if not isinstance(content, dict) or not content.get("name"):
                continue
            packages.append(
                {
                    "name": content["name"],
                    "version": str(content.get("version") or "latest"),
                    "path": str(file),
                }
            )

    logger.info(f"Found {len(packages)} packages under {root}")
    return packages


def compare_versions(v1: str, v2: str) -> int:
    """Compare dotted versions, ignoring prefixes such as ``^``, ``~``, ``v``.

    Returns 1, -1 or 0. A version with no numeric part sorts lowest.
    """
    n1 = _VERSION_PREFIX_RE.sub("", v1 or "")
    n2 = _VERSION_PREFIX_RE.sub("", v2 or "")
    if not n1 and not n2:
        return 0
    if not n1:
        return -1
    if not n2:
        return 1

    parts1 = n1.split(".")
    parts2 = n2.split(".")
    for i in range(max(len(parts1), len(parts2))):
        a = _leading_int(parts1[i] if i < len(parts1) else "0")
        b = _leading_int(parts2[i] if i < len(parts2) else "0")
        if a != b:
            return 1 if a > b else -1
    return 0


def _leading_int(part: str) -> int:
    match = re.match(r"\d+", part)
    return int(match.group()) if match else 0


def deduplicate_packages(packages: list[dict]) -> list[dict]:
    """Keep one entry per package name, the one with the highest version."""
    unique: dict[str, dict] = {}
    for pkg in packages:
        existing = unique.get(pkg["name"])
        if existing is None or compare_versions(pkg["version"], existing["version"]) > 0:
            unique[pkg["name"]] = pkg
    return list(unique.values())


def filter_packages(
    packages: list[dict],
    exclude_packages=(),
    exclude_patterns=(),
    include_packages=(),
) -> list[dict]:
    """Apply include/exclude lists.

    A non-empty *include_packages* restricts the result to those names and
    overrides the exclusions. Otherwise names in *exclude_packages* and
    names matching any glob in *exclude_patterns* are dropped.
    """
    if include_packages:
        wanted = set(include_packages)
        return [p for p in packages if p["name"] in wanted]

    excluded = set(exclude_packages)
    return [
        p
        for p in packages
        if p["name"] not in excluded
        and not any(fnmatchcase(p["name"], pat) for pat in exclude_patterns)
    ]


def discover_packages(config: FetchConfig) -> list[dict]:
    """Find, deduplicate and filter packages according to *config*."""
    found = find_packages(config.root_dir, config.scan_paths, config.exclude_paths)
    packages = filter_packages(
        deduplicate_packages(found),
        exclude_packages=config.exclude_packages,
        exclude_patterns=config.exclude_patterns,
        include_packages=config.include_packages,
    )
    return sorted(packages, key=lambda p: p["name"])

from __future__ import annotations

from pathlib import Path
from typing import Optional


def has_extension(path: Path) -> bool:
    return bool(Path(path).suffix)


def unique_path(base: Path) -> Path:
    """
    Return `base` if nothing exists there, otherwise the first free
    `name(n)ext` sibling for n = 1, 2, 3...

    photo.webp -> photo(1).webp -> photo(2).webp

    Nothing is created; the caller writes the file afterwards. Files are
    processed one at a time, so check-then-write cannot race.
    """
    base = Path(base)
    parent = base.parent
    stem = base.stem
    ext = base.suffix

    candidate = base
    counter = 0
    while candidate.exists() or candidate.is_symlink():
        counter += 1
        candidate = parent / f"{stem}({counter}){ext}"
    return candidate


def output_path_for(
    input_path: Path,
    output_base: Path,
    fmt: str,
    relative_to: Optional[Path] = None,
) -> Path:
    """
    Where the converted `input_path` should go.

    An `output_base` with an extension is an explicit filename and is used
    as-is. Otherwise the file lands in `output_base` as `<stem>.<fmt>`,
    under the same subdirectory it had below `relative_to`.
    """
    input_path = Path(input_path)
    output_base = Path(output_base)

    if relative_to is None and has_extension(output_base):
        return output_base

    target_dir = output_base
    if relative_to is not None:
        rel = input_path.parent.relative_to(relative_to)
        target_dir = output_base / rel

    return target_dir / f"{input_path.stem}.{fmt}"

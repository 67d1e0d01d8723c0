"""Unified diff helpers for the split (old / new) file view.

A direct line-by-line reconstruction: renames, binary files and
"\\ No newline at end of file" markers get no special treatment.
"""

FILE_HEADER = "diff --git a/"
_METADATA_PREFIXES = ("diff", "index", "---", "+++")


def split_diff(diff: str) -> tuple[str, str]:
    """Rebuild pre-image and post-image text from a unified diff.

    Hunk headers are skipped, removed lines go to the old side only, added
    lines to the new side only, and everything else (context) to both.

    Args:
        diff: Unified diff text for one file.

    Returns:
        Tuple of (old_content, new_content), each whitespace-trimmed.
    """
    old_lines, new_lines = [], []

    for line in diff.split("\n"):
        if line.startswith("@@"):
            continue
        if line.startswith("-") and not line.startswith("---"):
            old_lines.append(line[1:])
        elif line.startswith("+") and not line.startswith("+++"):
            new_lines.append(line[1:])
        elif not line.startswith(_METADATA_PREFIXES):
            old_lines.append(line)
            new_lines.append(line)

    return "\n".join(old_lines).strip(), "\n".join(new_lines).strip()


def extract_file_diff(full_diff: str, filename: str) -> str:
    """Cut one file's section out of a whole pull request diff.

    Args:
        full_diff: Diff for the entire pull request.
        filename: Path of the file as reported by the provider.

    Returns:
        The section from its `diff --git a/<filename>` header up to the next
        file header, or "" if the file has no section.
    """
    lines = full_diff.split("\n")
    header = f"{FILE_HEADER}{filename} "

    start = next((i for i, line in enumerate(lines) if line.startswith(header)), None)
    if start is None:
        return ""

    end = next(
        (i for i in range(start + 1, len(lines)) if lines[i].startswith(FILE_HEADER)),
        len(lines),
    )
    return "\n".join(lines[start:end])

"""Root-cause extraction for failed build phases.

A failed kernel build produces thousands of lines of output. This module
reduces it to the lines that explain the failure (compiler errors, linker
errors, missing make targets) and names the source file to blame.

Patterns are either strong or weak. Weak patterns (e.g. the generic
``collect2: error`` trailer) are only reported when no strong pattern
matched anywhere in the output.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from kasanbuild.builds.runner import BuildExecutionError, BuildExitError

logger = logging.getLogger(__name__)

MAX_CAUSE_LINES = 20
TAIL_LINES = 10


@dataclass(frozen=True)
class FailurePattern:
    """A regex identifying a root-cause line."""

    regex: re.Pattern[str]
    weak: bool = False


def _pattern(expr: str, weak: bool = False) -> FailurePattern:
    return FailurePattern(re.compile(expr), weak)


# Checked in order, the first match classifies a line. Specific weak
# trailers come first so that the generic strong patterns below do not
# claim them.
BUILD_FAILURE_PATTERNS = [
    _pattern(r"collect2: error: ", weak=True),
    _pattern(r"(ERROR|FAILED): Build did NOT complete", weak=True),
    _pattern(r": final link failed: ", weak=True),
    _pattern(r": error: "),
    _pattern(r"Error: "),
    _pattern(r"ERROR: "),
    _pattern(r": fatal error: "),
    _pattern(r": undefined reference to"),
    _pattern(r": multiple definition of"),
    _pattern(r": Permission denied"),
    _pattern(r"^([a-zA-Z0-9_\-/.]+):[0-9]+:([0-9]+:)?.*(error|invalid|fatal|wrong)"),
    _pattern(r"FAILED unresolved symbol"),
    _pattern(r"No rule to make target"),
    _pattern(r"^error: "),
    _pattern(r": not found", weak=True),
]

# First group is the file name
FILE_PATTERNS = [
    re.compile(r"^([a-zA-Z0-9_\-/.]+):[0-9]+:([0-9]+:)? "),
    re.compile(r"^(?:ld: )?(([a-zA-Z0-9_\-/.]+?)\.o):"),
    re.compile(r"; (([a-zA-Z0-9_\-/.]+?)\.o):"),
]


def extract_cause_lines(output: str) -> list[str]:
    """Select the output lines that explain a build failure.

    Args:
        output: Combined stdout/stderr of the failed phase.

    Returns:
        Matching lines in output order, without duplicates. Empty if
        no pattern matched.
    """
    weak = True
    cause: list[str] = []
    seen: set[str] = set()
    for raw_line in output.split("\n"):
        line = raw_line.rstrip("\r")
        for pattern in BUILD_FAILURE_PATTERNS:
            if not pattern.regex.search(line):
                continue
            if weak and not pattern.weak:
                # first strong match discards weak lines collected so far
                cause = []
                seen = set()
            if line in seen:
                break
            seen.add(line)
            if not cause:
                weak = pattern.weak
            cause.append(line)
            break
    return cause


def find_guilty_file(lines: list[str]) -> str | None:
    """Return the first relative source file named by the cause lines.

    Object files are mapped back to their C source.
    """
    for line in lines:
        for file_re in FILE_PATTERNS:
            match = file_re.search(line)
            if match is None:
                continue
            name = match.group(1)
            if name.startswith("/"):
                continue
            name = name.removeprefix("./")
            if name.endswith(".o"):
                name = name[:-2] + ".c"
            return name
    return None


def _tail(output: str, count: int = TAIL_LINES) -> list[str]:
    lines = [line.rstrip("\r") for line in output.split("\n") if line.strip()]
    return lines[-count:]


def extract_root_cause(
    output: str,
    error: BuildExecutionError,
    kernel_dir: Path | None = None,
) -> BuildExecutionError:
    """Reduce a failed phase's output to an actionable error.

    Args:
        output: Combined stdout/stderr of the failed phase.
        error: Error raised by the runner.
        kernel_dir: Kernel source tree root, stripped from reported paths.

    Returns:
        New error of the same class as ``error`` whose message is the
        reduced cause. The raw output, exit code and code are kept.
    """
    lines = extract_cause_lines(output)[:MAX_CAUSE_LINES]

    if kernel_dir is not None:
        prefix = str(kernel_dir).rstrip("/") + "/"
        lines = [line.replace(prefix, "") for line in lines]

    guilty_file = find_guilty_file(lines)

    if not lines and isinstance(error, BuildExitError):
        # nothing recognisable, the last lines are the best diagnostic left
        lines = _tail(output)

    if lines:
        message = "\n".join(lines)
        # gcc quotes identifiers with curly quotes
        message = message.replace("‘", "'").replace("’", "'")
    else:
        message = str(error)

    logger.debug(
        "Extracted root cause (%d lines, guilty file %s)", len(lines), guilty_file
    )
    return type(error)(
        message,
        exit_code=error.exit_code,
        output=output,
        code=error.code,
        guilty_file=guilty_file,
    )


__all__ = [
    "BUILD_FAILURE_PATTERNS",
    "FILE_PATTERNS",
    "MAX_CAUSE_LINES",
    "extract_cause_lines",
    "extract_root_cause",
    "find_guilty_file",
]

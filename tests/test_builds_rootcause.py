"""Tests for builds/rootcause.py module."""

from pathlib import Path

from kasanbuild.builds.rootcause import (
    MAX_CAUSE_LINES,
    extract_cause_lines,
    extract_root_cause,
    find_guilty_file,
)
from kasanbuild.builds.runner import (
    BuildExitError,
    BuildStartError,
    BuildTimeoutError,
)

NOISY_OUTPUT = """\
===> build.sh command:    ./build.sh -m amd64 -U -u -j8 kernel=GENERIC_KASAN
#    compile  GENERIC_KASAN/vfs_subr.o
#    compile  GENERIC_KASAN/uvm_map.o
../../../../kern/vfs_subr.c: In function 'vfs_busy':
../../../../kern/vfs_subr.c:123:5: error: 'mp' undeclared (first use in this function)
  123 |     mp->mnt_flag = 0;
      |     ^~
*** Failed target: vfs_subr.o
nbmake: stopped in /usr/src/sys/arch/amd64/compile/obj/GENERIC_KASAN
ERROR: Failed to make all in "/usr/src/sys/arch/amd64/compile/obj/GENERIC_KASAN"
*** BUILD ABORTED ***
"""


class TestExtractCauseLines:
    """Tests for extract_cause_lines function."""

    def test_compiler_error(self):
        """Should keep the compiler error and the make ERROR line."""
        lines = extract_cause_lines(NOISY_OUTPUT)
        assert lines == [
            "../../../../kern/vfs_subr.c:123:5: error: 'mp' undeclared "
            "(first use in this function)",
            'ERROR: Failed to make all in "/usr/src/sys/arch/amd64/compile/obj/'
            'GENERIC_KASAN"',
        ]

    def test_undefined_reference(self):
        """Should keep linker errors."""
        output = (
            "link GENERIC_KASAN/netbsd\n"
            "ld: kern_foo.o: in function `foo':\n"
            "kern_foo.c:(.text+0x1a): undefined reference to `kasan_shadow'\n"
        )
        assert extract_cause_lines(output) == [
            "kern_foo.c:(.text+0x1a): undefined reference to `kasan_shadow'"
        ]

    def test_strong_pattern_replaces_weak(self):
        """A strong match should discard weak lines seen before it."""
        output = (
            "sh: nbconfig: not found\n"
            "collect2: error: ld returned 1 exit status\n"
            "kern/init_main.c:10:1: error: expected ';'\n"
        )
        assert extract_cause_lines(output) == [
            "kern/init_main.c:10:1: error: expected ';'"
        ]

    def test_weak_only(self):
        """Weak lines should be reported when nothing strong matched."""
        output = "compiling\nsh: nbconfig: not found\nmore\n"
        assert extract_cause_lines(output) == ["sh: nbconfig: not found"]

    def test_deduplicates(self):
        """Repeated lines should appear once."""
        line = "make: *** No rule to make target 'foo.o'"
        assert extract_cause_lines(f"{line}\n{line}\n") == [line]

    def test_no_match(self):
        """Should return nothing for harmless output."""
        assert extract_cause_lines("all good\nstill good\n") == []


class TestFindGuiltyFile:
    """Tests for find_guilty_file function."""

    def test_source_file(self):
        assert find_guilty_file(["kern/vfs_subr.c:12:3: error: x"]) == "kern/vfs_subr.c"

    def test_object_file_maps_to_c(self):
        lines = ["ld: kern/kern_foo.o: in function"]
        assert find_guilty_file(lines) == "kern/kern_foo.c"

    def test_strips_dot_slash(self):
        assert find_guilty_file(["./dev/pci/if_wm.c:1: error: x"]) == "dev/pci/if_wm.c"

    def test_absolute_paths_ignored(self):
        assert find_guilty_file(["/usr/include/stdio.h:1:1: error: x"]) is None


class TestExtractRootCause:
    """Tests for extract_root_cause function."""

    def test_exit_error_reduced(self):
        """Message should be the cause lines, not the raw log."""
        error = BuildExitError("exit 1", exit_code=1, output=NOISY_OUTPUT)

        reduced = extract_root_cause(NOISY_OUTPUT, error)

        assert isinstance(reduced, BuildExitError)
        assert reduced is not error
        assert "'mp' undeclared" in str(reduced)
        assert "compile  GENERIC_KASAN/uvm_map.o" not in str(reduced)
        assert reduced.output == NOISY_OUTPUT
        assert reduced.exit_code == 1
        assert reduced.code == "build_failed"
        assert reduced.guilty_file == "../../../../kern/vfs_subr.c"

    def test_strips_kernel_dir(self):
        """Kernel source prefixes should be removed from cause lines."""
        output = "/home/u/src/sys/kern/kern_exec.c:5:1: error: bad\n"
        error = BuildExitError("exit 1", exit_code=1, output=output)

        reduced = extract_root_cause(output, error, kernel_dir=Path("/home/u/src"))

        assert str(reduced) == "sys/kern/kern_exec.c:5:1: error: bad"
        assert reduced.guilty_file == "sys/kern/kern_exec.c"

    def test_curly_quotes_normalised(self):
        output = "kern/a.c:1:1: error: ‘foo’ undeclared\n"
        reduced = extract_root_cause(output, BuildExitError("x", output=output))
        assert str(reduced) == "kern/a.c:1:1: error: 'foo' undeclared"

    def test_limits_lines(self):
        output = "".join(f"f{i}.c:1:1: error: e{i}\n" for i in range(50))
        reduced = extract_root_cause(output, BuildExitError("x", output=output))
        assert len(str(reduced).splitlines()) == MAX_CAUSE_LINES

    def test_exit_without_match_uses_tail(self):
        """Unrecognised failures should keep the last output lines."""
        output = "\n".join(f"line {i}" for i in range(30)) + "\n"
        error = BuildExitError("exit 1", exit_code=1, output=output)

        reduced = extract_root_cause(output, error)

        lines = str(reduced).splitlines()
        assert lines[-1] == "line 29"
        assert "line 0" not in lines
        assert len(lines) == 10

    def test_timeout_keeps_distinction(self):
        """Timeouts should stay timeouts with their message."""
        error = BuildTimeoutError(
            "Build phase timed out after 600 seconds: ./build.sh",
            exit_code=-1,
            output="compiling\n",
        )

        reduced = extract_root_cause("compiling\n", error)

        assert isinstance(reduced, BuildTimeoutError)
        assert reduced.code == "build_timeout"
        assert "timed out after 600 seconds" in str(reduced)

    def test_start_failure_never_discarded(self):
        """A failure with no output should keep the original message."""
        error = BuildStartError("Failed to execute ./build.sh: not found")

        reduced = extract_root_cause("", error)

        assert isinstance(reduced, BuildStartError)
        assert str(reduced) == "Failed to execute ./build.sh: not found"

    def test_empty_output_exit(self):
        error = BuildExitError("Build phase failed with exit code 1", exit_code=1)
        reduced = extract_root_cause("", error)
        assert str(reduced) == "Build phase failed with exit code 1"

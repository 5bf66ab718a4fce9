"""Tests for builds/kconfig.py module."""

import pytest

from kasanbuild.builds.errors import ConfigWriteError
from kasanbuild.builds.kconfig import (
    KERNEL_CONFIG_NAME,
    compile_dir,
    config_dir,
    generate_config_fragment,
    write_config_fragment,
)

ARCHES = ["amd64", "i386", "evbarm", "sparc64"]


class TestGenerateConfigFragment:
    """Tests for generate_config_fragment function."""

    @pytest.mark.parametrize("arch", ARCHES)
    def test_includes_generic_baseline(self, arch):
        """Should include the architecture's GENERIC config first."""
        fragment = generate_config_fragment(arch)
        assert fragment.splitlines()[0] == f'include "arch/{arch}/conf/GENERIC"'

    @pytest.mark.parametrize("arch", ARCHES)
    def test_enables_kasan(self, arch):
        """Should enable KASAN both as option and make option."""
        lines = generate_config_fragment(arch).splitlines()
        assert "options    KASAN" in lines
        assert "makeoptions    KASAN=1" in lines

    @pytest.mark.parametrize("arch", ARCHES)
    def test_removes_svs(self, arch):
        """Should remove SVS and never enable it."""
        lines = generate_config_fragment(arch).splitlines()
        assert "no options SVS" in lines
        assert not any(
            line.startswith("options") and "SVS" in line for line in lines
        )

    @pytest.mark.parametrize("arch", ARCHES)
    def test_idempotent(self, arch):
        """Repeated generation should be byte-identical."""
        assert generate_config_fragment(arch) == generate_config_fragment(arch)

    def test_amd64_exact(self):
        """amd64 fragment should match the known text."""
        assert generate_config_fragment("amd64") == (
            'include "arch/amd64/conf/GENERIC"\n'
            "\n"
            "makeoptions    KASAN=1\n"
            "options    KASAN\n"
            "no options SVS\n"
        )


class TestPaths:
    """Tests for config and compile directory helpers."""

    def test_config_dir(self, tmp_path):
        assert config_dir(tmp_path, "amd64") == tmp_path / "sys/arch/amd64/conf"

    def test_compile_dir(self, tmp_path):
        assert (
            compile_dir(tmp_path, "amd64")
            == tmp_path / "sys/arch/amd64/compile/obj" / KERNEL_CONFIG_NAME
        )


class TestWriteConfigFragment:
    """Tests for write_config_fragment function."""

    def test_writes_fragment(self, tmp_path):
        """Should write the fragment into the conf directory."""
        path = write_config_fragment(tmp_path, "amd64")

        assert path == tmp_path / "sys/arch/amd64/conf" / KERNEL_CONFIG_NAME
        assert path.read_text() == generate_config_fragment("amd64")

    def test_overwrites_existing(self, tmp_path):
        """Should replace a previous config at the same path."""
        conf = config_dir(tmp_path, "amd64")
        conf.mkdir(parents=True)
        (conf / KERNEL_CONFIG_NAME).write_text("options SVS\n")

        path = write_config_fragment(tmp_path, "amd64")

        assert path.read_text() == generate_config_fragment("amd64")

    def test_rewrite_is_byte_identical(self, tmp_path):
        """Writing twice should leave identical bytes."""
        first = write_config_fragment(tmp_path, "amd64").read_bytes()
        second = write_config_fragment(tmp_path, "amd64").read_bytes()
        assert first == second

    def test_write_failure(self, tmp_path):
        """Should raise ConfigWriteError naming the target path."""
        # a file where the sys directory should be
        (tmp_path / "sys").write_text("not a directory")

        with pytest.raises(ConfigWriteError) as exc_info:
            write_config_fragment(tmp_path, "amd64")

        assert exc_info.value.path == (
            tmp_path / "sys/arch/amd64/conf" / KERNEL_CONFIG_NAME
        )
        assert exc_info.value.code == "config_write_error"

    def test_uses_given_filesystem(self, tmp_path, tracking_fs_cls):
        """Should write through the supplied filesystem."""
        fs = tracking_fs_cls()
        path = write_config_fragment(tmp_path, "amd64", fs)
        assert fs.writes == [path]

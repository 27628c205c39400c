"""Tests for the optional tsc verification step."""

import subprocess
from unittest.mock import MagicMock, patch

from tsmigrate.verify import tsc_command, verify_target


def _completed(returncode=0, stdout="", stderr=""):
    return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


class TestVerifyTarget:
    def test_no_tsconfig_skips(self, tmp_path):
        with patch("tsmigrate.verify.subprocess.run") as run:
            assert verify_target("src/A.tsx", str(tmp_path)) == []
        run.assert_not_called()

    def test_clean_pass(self, tmp_path):
        (tmp_path / "tsconfig.json").write_text("{}")
        with patch("tsmigrate.verify.subprocess.run", return_value=_completed()) as run:
            assert verify_target("src/A.tsx", str(tmp_path)) == []
        assert run.call_args.args[0] == tsc_command("src/A.tsx")
        assert run.call_args.kwargs["cwd"] == str(tmp_path)

    def test_errors_become_warnings(self, tmp_path):
        (tmp_path / "tsconfig.json").write_text("{}")
        out = "\n".join(f"src/A.tsx({i},1): error TS2322" for i in range(7))
        with patch("tsmigrate.verify.subprocess.run", return_value=_completed(2, stdout=out)):
            warnings = verify_target("src/A.tsx", str(tmp_path))
        assert len(warnings) == 6
        assert warnings[0] == "tsc: src/A.tsx(0,1): error TS2322"
        assert warnings[-1] == "tsc: ... 2 more lines"

    def test_silent_failure(self, tmp_path):
        (tmp_path / "tsconfig.json").write_text("{}")
        with patch("tsmigrate.verify.subprocess.run", return_value=_completed(1)):
            assert verify_target("src/A.tsx", str(tmp_path)) == ["tsc exited with status 1"]

    def test_missing_compiler_or_timeout(self, tmp_path):
        (tmp_path / "tsconfig.json").write_text("{}")
        with patch("tsmigrate.verify.subprocess.run", side_effect=FileNotFoundError("npx")):
            assert verify_target("src/A.tsx", str(tmp_path))[0].startswith("type check skipped:")
        with patch("tsmigrate.verify.subprocess.run",
                   side_effect=subprocess.TimeoutExpired(cmd="npx", timeout=1)):
            assert verify_target("src/A.tsx", str(tmp_path), timeout=1)[0].startswith("type check skipped:")

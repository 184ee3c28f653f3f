import subprocess
import sys


def test_cli_help() -> None:
    cp = subprocess.run(
        [sys.executable, "-m", "pileupstats", "--help"],
        check=True,
        capture_output=True,
        text=True,
    )
    assert "pileupstats" in cp.stdout.lower()

# run.py
"""Bootstrap a local venv for Chart Journal, then serve the API or run the tests.

    python run.py                 # install and serve
    python run.py --postgres      # also install the Postgres driver
    python run.py test -- -k stats
"""
import argparse
import os
import subprocess
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent
VENV_DIR = BASE_DIR / "venv"


def run(cmd, **kwargs):
    print("[>] " + " ".join(str(part) for part in cmd))
    return subprocess.call([str(part) for part in cmd], cwd=BASE_DIR, **kwargs)


def venv_python():
    if os.name == "nt":
        return VENV_DIR / "Scripts" / "python.exe"
    return VENV_DIR / "bin" / "python"


def ensure_venv():
    if VENV_DIR.exists():
        print("[✓] Using virtual environment at %s" % VENV_DIR)
        return
    print("[+] Creating virtual environment...")
    if run([sys.executable, "-m", "venv", VENV_DIR]) != 0:
        sys.exit("[!] Could not create the virtual environment")


def install(extras):
    target = "."
    if extras:
        target = ".[%s]" % ",".join(sorted(extras))
    print("[+] Installing chart-journal %s" % target)
    if run([venv_python(), "-m", "pip", "install", "--quiet", "-e", target]) != 0:
        sys.exit("[!] Install failed")


def parse_args(argv=None):
    argv = sys.argv[1:] if argv is None else list(argv)
    pytest_args = []
    if "--" in argv:
        split = argv.index("--")
        argv, pytest_args = argv[:split], argv[split + 1:]

    parser = argparse.ArgumentParser(description="Chart Journal launcher", epilog="arguments after -- go to pytest")
    parser.add_argument("command", nargs="?", default="serve", choices=["serve", "test"])
    parser.add_argument("--postgres", action="store_true", help="install the psycopg2 driver for DATABASE_URL")
    parser.add_argument("--skip-install", action="store_true", help="reuse the existing venv as-is")
    args = parser.parse_args(argv)
    args.pytest_args = pytest_args
    return args


def main(argv=None):
    args = parse_args(argv)
    ensure_venv()

    extras = set()
    if args.postgres:
        extras.add("postgres")
    if args.command == "test":
        extras.add("test")
    if not args.skip_install:
        install(extras)

    if args.command == "test":
        return run([venv_python(), "-m", "pytest"] + args.pytest_args)

    # Host, port and reload come from HOST / PORT / DEBUG in .env
    print("[🚀] Starting Chart Journal API...\n")
    return run([venv_python(), "-m", "chartjournal.main"])


if __name__ == "__main__":
    sys.exit(main())

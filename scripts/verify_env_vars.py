"""List the environment variables the app reads and check them against a .env file."""
import re
import sys
from pathlib import Path

from dotenv import dotenv_values

ROOT = Path(__file__).resolve().parents[1]


def find_env_vars():
    """Find all environment variables referenced in code."""
    env_vars = set()
    for py_file in (ROOT / "laundrylocator").rglob("*.py"):
        content = py_file.read_text(encoding="utf-8", errors="ignore")
        env_vars.update(re.findall(r'alias=["\']([A-Z0-9_]+)["\']', content))
        env_vars.update(re.findall(r'os\.getenv\(["\']([A-Z0-9_]+)["\']', content))
    return sorted(env_vars)


def read_env_file(path: Path):
    return set(dotenv_values(path))


def verify(env_path: Path):
    code_vars = set(find_env_vars())
    print("=== ENV VAR VERIFICATION ===")
    print(f"Code references: {len(code_vars)} unique vars")
    for v in sorted(code_vars):
        print(f"  - {v}")

    if not env_path.exists():
        print(f"\n{env_path} not found; nothing to compare.")
        return

    env_vars = read_env_file(env_path)
    missing = sorted(code_vars - env_vars)
    unused = sorted(env_vars - code_vars)
    print("")
    if missing:
        print(f"NOT SET IN {env_path.name} ({len(missing)}), defaults apply:")
        for v in missing:
            print(f"  - {v}")
    else:
        print(f"Every var is set in {env_path.name}.")
    if unused:
        print(f"\nUNUSED IN CODE ({len(unused)}):")
        for v in unused:
            print(f"  - {v}")


if __name__ == "__main__":
    verify(Path(sys.argv[1]) if len(sys.argv) > 1 else ROOT / ".env")

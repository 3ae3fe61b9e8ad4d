import sys
from pathlib import Path

# Ensure src/ (the package) and tests/ (mock_nanonis_server) are importable
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / 'src'
TESTS = ROOT / 'tests'
for path in (SRC, TESTS):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

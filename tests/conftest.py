import sys
from pathlib import Path

# Add project root so `import services`, `import models` etc. work in tests
ROOT = Path(__file__).resolve().parents[1]
HERE = Path(__file__).resolve().parent
for path in (ROOT, HERE):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

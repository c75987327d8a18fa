"""Allow ``python -m pathtrace``."""

import sys

from pathtrace.cli import main

sys.exit(main())

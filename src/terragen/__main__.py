"""Allow ``python -m terragen``."""

import sys

from .cli import main

sys.exit(main())

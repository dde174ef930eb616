"""Allow ``python -m hurtlocker``."""

import sys

from hurtlocker.cli.main import main

sys.exit(main())

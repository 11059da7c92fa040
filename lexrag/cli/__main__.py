"""Allow ``python -m lexrag.cli`` execution."""

import sys

from lexrag.cli.commands import main

sys.exit(main())

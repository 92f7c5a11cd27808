"""Allow running CLI as: python -m theme_builder.cli"""

import sys

from .main import main

sys.exit(main())

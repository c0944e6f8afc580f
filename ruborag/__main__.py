import sys

from ruborag.cli import main

sys.exit(main())

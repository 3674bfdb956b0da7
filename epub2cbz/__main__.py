import sys

from epub2cbz.cli import main

sys.exit(main())

import sys

from chromesthesia.cli import main

sys.exit(main())

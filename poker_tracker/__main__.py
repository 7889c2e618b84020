import sys

from poker_tracker.cli import main

sys.exit(main())

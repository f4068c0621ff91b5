import sys

from tuna.cli.main import main

sys.exit(main())

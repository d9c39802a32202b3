import sys

from bulkshot.cli import main

sys.exit(main())

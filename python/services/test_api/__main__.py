import sys

from test_api.main import main

sys.exit(main())

import sys

from weather_data.cli import main

sys.exit(main())

import os
import sys

# allow running straight from a source checkout
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from rodo_desktop.app import main  # noqa: E402

if __name__ == '__main__':
    main()

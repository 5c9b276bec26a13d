"""Module entrypoint for `python -m coursegraph`."""

import sys

from coursegraph.lessons.markdown_validator import main

if __name__ == "__main__":
    sys.exit(main())

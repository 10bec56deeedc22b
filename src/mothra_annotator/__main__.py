"""Allow running with `python -m mothra_annotator`."""

from .app import main

main()

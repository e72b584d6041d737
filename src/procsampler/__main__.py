"""Allow ``python -m procsampler``."""

from procsampler.cli import main

main()

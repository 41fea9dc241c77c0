"""Allow ``python -m authcli``."""

from authcli.app import main

main()

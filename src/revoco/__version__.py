"""revoco version information."""

__version__ = "1.1.0"
__version_info__ = tuple(int(x) for x in __version__.split("."))

# Version history:
# 1.0.0 - Initial Python release: free/click/manual/auto modes, battery and
#         mode queries, reconnect, MX-5500 combo framing
# 1.1.0 - hidapi backend (-b hidapi), --list probe table, --setup-udev rules,
#         remembered device/backend (--save), free-on-move/click-on-move

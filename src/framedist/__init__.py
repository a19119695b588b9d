"""
framedist distributes frames cut from a 2-D dataset over a pool of workers, pulling
tasks on demand, and reassembles the processed frames in order.
"""

from framedist.version import __version__

"""
RideMyLay realtime: notification and chat delivery over Socket.IO.
"""

__version__ = "0.1.0"

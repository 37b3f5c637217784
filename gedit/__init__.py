"""
gedit: unpack GIF animations into PNG frames and pack them back.
"""

__version__ = "0.1.0"

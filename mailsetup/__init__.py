"""
mailsetup - account setup engine for an email client.

Provider discovery, server-name inference, setup session state and the
duplicate-check / check-settings / save pipeline.
"""

__version__ = "0.1.0"

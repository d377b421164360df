"""
FieldWatch Alert Hub.

Incident reporting, SOS dispatch and a live alert map over Firebase.
"""

__version__ = "0.1.0"

"""
Adapter layer for perpetual storage.

Contains the local filesystem adapter, the Autonomi HTTP bridge, and the
PerpetualAdapter that combines them behind one interface.
"""

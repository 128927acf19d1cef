"""
Infrastructure Layer
=====================

Datastore connection management shared by the bounded contexts.
"""

"""
Task services.

    lifecycle   create / update / status transitions / delete, with notifications
    comments    comments and their recipient set

Import from the submodules directly.
"""

"""Workspace tree engine.

- models: node definitions, runtime node records, navigation state
- store: the in-memory tree keyed by logical path
- config_file: YAML tree configs on disk
- loader: splices referenced and discovered configs into the tree
- resolver: logical address -> physical directory
- executor: recursive git operations with per-node failure tolerance
- listing: text rendering of subtrees
"""

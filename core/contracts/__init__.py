"""core.contracts

Central, stable interfaces (ABCs) shared between the signing engine and its
external collaborators (persistent store, sync sink, audit trail).

This package intentionally contains only interfaces and shared type definitions.
"""

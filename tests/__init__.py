"""Test package for mailsettings.

Marks ``tests`` as a package so ``tests.conftest`` and the top-level CLI wiring
tests import under a stable name, distinct from the rootdir-inserted
``tests/unit`` and ``tests/e2e`` modules. Importing it has no side effects.
"""

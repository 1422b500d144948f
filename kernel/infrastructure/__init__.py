"""
Infrastructure module: correlation, log scopes, performance tracking,
exception logging and database bootstrap.

Import the submodules directly (kernel.infrastructure.db,
kernel.infrastructure.performance, ...); this package does not re-export
them so that kernel.config.logging can depend on correlation without a
circular import.
"""

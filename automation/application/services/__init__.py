"""Application services: condition evaluation, action execution, engine and dispatcher.

Import from the submodules directly; they depend only on domain,
application DTOs and interfaces.
"""

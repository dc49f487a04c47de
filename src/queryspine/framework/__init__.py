"""
Framework layer: parameter validation, format and source registries,
printer protocol, text post-processing and structured logging.

Import from the submodules directly; this package does not re-export them.
"""

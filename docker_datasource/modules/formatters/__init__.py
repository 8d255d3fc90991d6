from .formatters import (
    RegistryRepository,
    ensure_trailing_slash,
    get_registry_repository,
    split_image_ref,
    trim_trailing_slash,
)

"""Bundles vertical configuration.

Builds the StorefrontConfig from the environment once, following the
domain config pattern; tests construct their own instances.
"""

from patterns.domain_config import StorefrontConfig

# Process-wide configuration instance
config = StorefrontConfig.from_env()

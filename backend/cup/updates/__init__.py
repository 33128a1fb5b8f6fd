"""
Updates Module

Image update detection against OCI registries.

Architecture:
- RegistryClient: registry protocol (auth probe, tokens, digests, tag lists)
- UpdateEngine: per-image version or digest comparison
- UpdateChecker: batches images by registry and runs checks concurrently
"""

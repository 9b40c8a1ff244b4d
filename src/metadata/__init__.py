"""containerd metadata decoders.

This module turns bucket subtrees of the containerd stores into typed
records. Decoders tolerate absent buckets and corrupt values.
"""

"""IPFS URI handling and metadata retrieval."""

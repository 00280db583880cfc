"""Attendance NFT contract layer.

Talks to a deployed ink! attendance contract on a Substrate chain and falls
back to an in-memory simulated ledger whenever the chain path is unavailable:
  - Contract metadata loading and message resolution
  - SCALE call encoding and ed25519 extrinsic signing
  - JSON-RPC transport with block-inclusion polling
  - A typed façade (BlockchainClient) for events and attendance NFTs
"""

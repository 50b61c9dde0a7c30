from hubble.client.rollup import RollupClient

__all__ = ["RollupClient"]

from agentlog.config import load_config
from agentlog.files import DataDir


def get_data_dir() -> DataDir:
    """Get the sandboxed data directory from the current configuration."""
    config = load_config()
    return DataDir(config.data_root, chunk_size=config.pipeline.chunk_size)

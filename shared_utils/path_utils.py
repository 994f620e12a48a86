"""
Path utilities for the Northeast spectral indices pipeline.

Provides directory management used by the export writer.
"""

from pathlib import Path
from typing import Union


def ensure_directory(path: Union[str, Path], parents: bool = True) -> Path:
    """
    Ensure directory exists, creating it if necessary.
    
    Args:
        path: Directory path to create
        parents: Whether to create parent directories
        
    Returns:
        Path: Created directory path
        
    Examples:
        >>> output_dir = ensure_directory("exports/Northeast_Spectral_Indices")
    """
    path = Path(path)
    path.mkdir(parents=parents, exist_ok=True)
    return path

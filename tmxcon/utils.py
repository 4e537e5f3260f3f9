"""
Utility functions for tmxcon.
"""

import json
import os
from pathlib import Path
from typing import Dict, Any, List, Optional, Union
from .logging_config import get_logger

logger = get_logger('utils')

TMX_SUFFIX = ".tmx"


def save_json(data: Dict[str, Any], filepath: str, indent: int = 2) -> None:
    """Save data to a JSON file."""
    directory = os.path.dirname(filepath)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(filepath, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=False)


def find_tmx_files(input_path: Union[str, Path], recursive: bool = False) -> List[Path]:
    """
    Find TMX map files.
    
    Args:
        input_path: A .tmx file or a directory containing them
        recursive: If True, search subdirectories too
    
    Returns:
        Sorted list of .tmx paths (a file argument is returned as-is)
    """
    path = Path(input_path)
    
    if path.is_file():
        return [path]
    
    if not path.is_dir():
        logger.warning(f"Input not found: {path}")
        return []
    
    pattern = f"**/*{TMX_SUFFIX}" if recursive else f"*{TMX_SUFFIX}"
    return sorted(p for p in path.glob(pattern) if p.is_file())


def sanitize_filename(name: str) -> str:
    """Convert a name to a safe filename."""
    invalid_chars = '<>:"/\\|?*'
    for char in invalid_chars:
        name = name.replace(char, '_')
    return name


def output_path_for(map_path: Path, output_dir: Path, input_root: Optional[Path] = None) -> Path:
    """
    Get the JSON content path written for a map.
    
    The map's directory relative to input_root is mirrored under output_dir,
    so maps sharing a file name in different folders get different outputs.
    
    Args:
        map_path: The .tmx file
        output_dir: Output directory for content files
        input_root: Directory the map was found under (None writes flat into output_dir)
    """
    relative_dir = Path()
    if input_root is not None:
        relative_dir = map_path.parent.relative_to(input_root)
    return output_dir / relative_dir / f"{sanitize_filename(map_path.stem)}.json"

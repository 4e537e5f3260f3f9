"""
Worker function for parallel map import.
This module exists separately so batch runs can hand it to an executor.
"""

from pathlib import Path


def convert_single_map(args_tuple):
    """Import a single map and write its content file - designed for parallel execution."""
    map_path, output_path, cell_order, strict_properties, indent = args_tuple
    
    try:
        from .importer import TmxImporter
        from .utils import save_json
        
        # One importer per task
        importer = TmxImporter(cell_order=cell_order, strict_properties=strict_properties)
        content = importer.import_file(map_path)
        
        save_json(content.to_dict(), str(output_path), indent=indent)
        
        return ("success", map_path, None, {
            "name": content.name,
            "output": str(Path(output_path)),
            "width": content.width,
            "height": content.height,
            "tiles": content.tile_count,
            "layers": content.layer_count,
        })
    
    except Exception as e:
        error_details = f"{type(e).__name__}: {str(e)}"
        return ("error", map_path, error_details, None)

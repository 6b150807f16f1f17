from rarctool.tree.disk import export_directory, import_directory
from rarctool.tree.models import Directory, File, split_file_name

__all__ = [
    "Directory",
    "File",
    "export_directory",
    "import_directory",
    "split_file_name",
]

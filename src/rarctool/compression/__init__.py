from rarctool.compression import yay0, yaz0

__all__ = ["yay0", "yaz0"]

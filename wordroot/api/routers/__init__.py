from . import fields, roots, settings, tasks

__all__ = ["fields", "roots", "settings", "tasks"]

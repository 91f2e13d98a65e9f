from importlib import import_module

# members first: /spaces/members must win over /spaces/{space_id}
modules = [
    'members',
    'spaces',
    'locations',
    'items',
    'history',
    'tags',
]

for m in modules:
    import_module(f'.{m}', __name__)

__all__ = modules

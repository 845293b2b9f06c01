from . import horizon, aggregate, project, compare

__all__ = ['horizon', 'aggregate', 'project', 'compare']

from .auth import User, SessionToken
from .catalog import ProductTemplate, ProductBatch
from .dispensaries import Dispensary
from .orders import WholesaleOrder, WholesaleOrderLine

__all__ = [
    'User', 'SessionToken',
    'ProductTemplate', 'ProductBatch',
    'Dispensary',
    'WholesaleOrder', 'WholesaleOrderLine',
]

from cupcake_store.models.user import User
from cupcake_store.models.product import Product
from cupcake_store.models.order import Order, OrderStatus
from cupcake_store.models.order_item import OrderItem
from cupcake_store.models.review import Review
from cupcake_store.models.preassigned_role import PreassignedRole

"""
RBAC dependencies for FastAPI routes
Role-based access control implemented as dependencies that run after authentication
"""
from fastapi import HTTPException, status, Request
import logging

logger = logging.getLogger(__name__)

RESOURCES_FOR_ROLES = {
    'admin': {
        'auth': ['read', 'write'],
        'requests': ['read', 'write', 'delete'],
        'bids': ['read', 'write', 'delete'],
        'products': ['read', 'write', 'delete'],
        'products/price-tiers': ['read', 'write', 'delete'],
        'cart': ['read', 'write', 'delete'],
        'orders': ['read', 'write', 'delete'],
    },
    'supplier': {
        'auth': ['read', 'write'],
        'requests': ['read'],  # Browse sourcing needs to bid on
        'bids': ['read', 'write', 'delete'],  # Place and withdraw own bids
        'products': ['read', 'write', 'delete'],  # Full product management
        'products/price-tiers': ['read', 'write', 'delete'],  # Manage pricing
        'orders': ['read', 'write'],  # Received orders and status updates
    },
    'buyer': {
        'auth': ['read', 'write'],
        'requests': ['read', 'write'],
        'bids': ['read', 'write'],  # Accept or reject bids on own requests
        'products': ['read'],
        'cart': ['read', 'write', 'delete'],
        'orders': ['read', 'write'],
    }
}

def normalize_path(path: str) -> str:
    """Normalize request path for RBAC checking"""
    if path.startswith('/'):
        path = path[1:]

    segments = path.split('/')

    if segments[0] == 'products':
        if 'price-tiers' in segments:
            return 'products/price-tiers'
        return 'products'

    return segments[0]

def translate_method_to_action(method: str) -> str:
    """Map HTTP methods to RBAC actions"""
    method_permission_mapping = {
        'GET': 'read',
        'POST': 'write',
        'PUT': 'write',
        'PATCH': 'write',
        'DELETE': 'delete',
    }
    return method_permission_mapping.get(method.upper(), 'read')

def has_permission(user_role: str, resource_name: str, required_permission: str) -> bool:
    """Check if user role has permission for the resource and action"""
    if user_role not in RESOURCES_FOR_ROLES:
        return False

    user_permissions = RESOURCES_FOR_ROLES[user_role]

    if resource_name in user_permissions:
        return required_permission in user_permissions[resource_name]

    parent_resource = resource_name.split('/')[0] if '/' in resource_name else resource_name
    if parent_resource in user_permissions:
        return required_permission in user_permissions[parent_resource]

    return False

def require_permission(resource: str = None, permission: str = None):
    """
    Create an RBAC dependency that checks permissions

    Args:
        resource: Specific resource name (auto-detected if not provided)
        permission: Specific permission (auto-detected if not provided)
    """
    def check_rbac(request: Request):
        """RBAC dependency function"""
        try:
            current_user = getattr(request.state, 'current_user', None)
            if not current_user:
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="Authentication required"
                )

            user_role = current_user.get('role') or 'buyer'

            resource_name = resource or normalize_path(str(request.url.path))
            required_permission = permission or translate_method_to_action(request.method)

            if not has_permission(user_role, resource_name, required_permission):
                logger.warning(f"Access denied - User: {user_role}, Resource: {resource_name}, Permission: {required_permission}")
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Access denied. {user_role.title()} role does not have {required_permission} permission for {resource_name}"
                )

            logger.debug(f"Access granted - User: {user_role}, Resource: {resource_name}, Permission: {required_permission}")
            return True

        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"RBAC dependency error: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Authorization check failed"
            )

    return check_rbac

# Sourcing request permissions
require_request_read = require_permission("requests", "read")
require_request_write = require_permission("requests", "write")

# Bid permissions
require_bid_read = require_permission("bids", "read")
require_bid_write = require_permission("bids", "write")
require_bid_delete = require_permission("bids", "delete")

# Product permissions
require_product_write = require_permission("products", "write")  # Suppliers only
require_product_delete = require_permission("products", "delete")  # Suppliers only

# Price tier and variant routes (suppliers only), resource and action taken from the request
require_catalog_access = require_permission()

# Cart permissions (buyers only)
require_cart_read = require_permission("cart", "read")
require_cart_write = require_permission("cart", "write")
require_cart_delete = require_permission("cart", "delete")

# Order permissions
require_order_read = require_permission("orders", "read")
require_order_write = require_permission("orders", "write")

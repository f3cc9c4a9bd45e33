"""
Response helper utilities: ORM rows to plain dicts with string UUIDs
"""
from typing import Any, Dict
from utils.clock import has_passed
from utils.variants import default_variant_id


def _str_or_none(value: Any):
    return str(value) if value is not None else None


# Specific helper functions for common models
def user_profile_to_dict(user_profile, email: str = None) -> Dict[str, Any]:
    """Convert UserProfile model to dict with string UUIDs"""
    return {
        'id': str(user_profile.id),
        'user_id': str(user_profile.user_id),
        'email': user_profile.email or email,
        'display_name': user_profile.display_name,
        'company_name': user_profile.company_name,
        'phone_number': user_profile.phone_number,
        'location': user_profile.location,
        'is_verified': user_profile.is_verified,
        'role': user_profile.role,
        'created_at': user_profile.created_at,
        'updated_at': user_profile.updated_at
    }


def price_tier_to_dict(tier) -> Dict[str, Any]:
    """Convert PriceTier model to dict with string UUIDs"""
    return {
        'id': str(tier.id),
        'product_id': str(tier.product_id),
        'min_quantity': tier.min_quantity,
        'max_quantity': tier.max_quantity,
        'price_per_unit': tier.price_per_unit,
        'label': tier.label,
        'created_at': tier.created_at,
        'updated_at': tier.updated_at
    }


def product_to_dict(product) -> Dict[str, Any]:
    """Convert Product model (tiers loaded) to dict with string UUIDs"""
    return {
        'id': str(product.id),
        'supplier_id': str(product.supplier_id),
        'supplier_name': product.supplier_name,
        'title': product.title,
        'description': product.description,
        'category': product.category,
        'images': product.images or [],
        'price': product.price,
        'original_price': product.original_price,
        'unit': product.unit,
        'moq': product.moq,
        'max_order_quantity': product.max_order_quantity,
        'available': product.available,
        'sold': product.sold,
        'options': product.options or [],
        'variants': product.variants or [],
        'default_variant': default_variant_id(product.variants),
        'price_tiers': [price_tier_to_dict(tier) for tier in product.price_tiers],
        'status': product.status,
        'created_at': product.created_at,
        'updated_at': product.updated_at
    }


def display_status(sourcing_request) -> str:
    """UI refinement of the stored request status"""
    if sourcing_request.status == "open":
        if has_passed(sourcing_request.expires_at):
            return "expired"
        if sourcing_request.bid_count > 0:
            return "bidding"
    if sourcing_request.status == "fulfilled":
        return "bid-accepted"
    return sourcing_request.status


def request_to_dict(sourcing_request) -> Dict[str, Any]:
    """Convert SourcingRequest model to dict with string UUIDs"""
    return {
        'id': str(sourcing_request.id),
        'request_number': sourcing_request.request_number,
        'buyer_id': str(sourcing_request.buyer_id),
        'buyer_name': sourcing_request.buyer_name,
        'buyer_email': sourcing_request.buyer_email,
        'product_name': sourcing_request.product_name,
        'category': sourcing_request.category,
        'quantity': sourcing_request.quantity,
        'unit': sourcing_request.unit,
        'target_price': sourcing_request.target_price,
        'max_budget': sourcing_request.max_budget,
        'description': sourcing_request.description,
        'specifications': sourcing_request.specifications or [],
        'preferred_brands': sourcing_request.preferred_brands or [],
        'location': sourcing_request.location,
        'contact_method': sourcing_request.contact_method,
        'urgency': sourcing_request.urgency,
        'priority': sourcing_request.priority,
        'status': sourcing_request.status,
        'display_status': display_status(sourcing_request),
        'bid_count': sourcing_request.bid_count,
        'view_count': sourcing_request.view_count,
        'accepted_bid_id': _str_or_none(sourcing_request.accepted_bid_id),
        'accepted_at': sourcing_request.accepted_at,
        'expires_at': sourcing_request.expires_at,
        'created_at': sourcing_request.created_at,
        'updated_at': sourcing_request.updated_at
    }


def bid_to_dict(bid) -> Dict[str, Any]:
    """Convert Bid model to dict with string UUIDs"""
    return {
        'id': str(bid.id),
        'request_id': str(bid.request_id),
        'supplier_id': str(bid.supplier_id),
        'product_id': str(bid.product_id),
        'supplier_name': bid.supplier_name,
        'product_name': bid.product_name,
        'bid_price': bid.bid_price,
        'original_price': bid.original_price,
        'quantity': bid.quantity,
        'delivery_time': bid.delivery_time,
        'message': bid.message,
        'status': bid.status,
        'accepted_at': bid.accepted_at,
        'rejected_at': bid.rejected_at,
        'withdrawn_at': bid.withdrawn_at,
        'created_at': bid.created_at,
        'updated_at': bid.updated_at
    }


def cart_item_to_dict(item) -> Dict[str, Any]:
    """Convert CartItem model to dict with string UUIDs"""
    return {
        'id': str(item.id),
        'item_type': item.item_type,
        'product_id': str(item.product_id),
        'product_name': item.product_name,
        'product_image': item.product_image,
        'supplier_id': str(item.supplier_id),
        'supplier_name': item.supplier_name,
        'quantity': item.quantity,
        'unit_price': item.unit_price,
        'total_price': item.total_price,
        'is_bulk_order': item.is_bulk_order,
        'min_order_quantity': item.min_order_quantity,
        'max_order_quantity': item.max_order_quantity,
        'bulk_discount': item.bulk_discount or [],
        'variant_id': item.variant_id,
        'variant_name': item.variant_name,
        'color': item.color,
        'size': item.size,
        'material': item.material,
        'style': item.style,
        'variation_attributes': item.variation_attributes or [],
        'request_id': _str_or_none(item.request_id),
        'bid_id': _str_or_none(item.bid_id),
        'original_price': item.original_price,
        'discount_percent': item.discount_percent,
        'added_at': item.added_at
    }


def cart_to_dict(cart) -> Dict[str, Any]:
    """Convert Cart model (items loaded) to dict with totals"""
    items = [cart_item_to_dict(item) for item in cart.items]
    return {
        'id': str(cart.id),
        'user_id': str(cart.user_id),
        'items': items,
        'total_items': sum(item['quantity'] for item in items),
        'total_amount': round(sum(item['total_price'] for item in items), 2),
        'updated_at': cart.updated_at
    }


def order_item_to_dict(item) -> Dict[str, Any]:
    return {
        'id': str(item.id),
        'product_id': str(item.product_id),
        'product_name': item.product_name,
        'product_image': item.product_image,
        'quantity': item.quantity,
        'unit_price': item.unit_price,
        'total_price': item.total_price,
        'variant_id': item.variant_id,
        'variant_name': item.variant_name,
        'color': item.color,
        'size': item.size,
        'material': item.material,
        'style': item.style,
        'variation_attributes': item.variation_attributes or [],
        'specifications': item.specifications,
        'bid_id': _str_or_none(item.bid_id),
        'request_id': _str_or_none(item.request_id)
    }


def order_to_dict(order) -> Dict[str, Any]:
    """Convert Order model (items loaded) to dict with string UUIDs"""
    return {
        'id': str(order.id),
        'order_number': order.order_number,
        'buyer_id': str(order.buyer_id),
        'buyer_name': order.buyer_name,
        'buyer_email': order.buyer_email,
        'supplier_id': str(order.supplier_id),
        'supplier_name': order.supplier_name,
        'supplier_email': order.supplier_email,
        'products': [order_item_to_dict(item) for item in order.items],
        'total_amount': order.total_amount,
        'status': order.status,
        'payment_status': order.payment_status,
        'shipping_address': order.shipping_address,
        'shipping_method': order.shipping_method,
        'estimated_delivery': order.estimated_delivery,
        'delivered_at': order.delivered_at,
        'notes': order.notes,
        'created_at': order.created_at,
        'updated_at': order.updated_at
    }

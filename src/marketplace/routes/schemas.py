from marshmallow import EXCLUDE, Schema, fields, validate

from marketplace.models.order import SubOrderStatus
from marketplace.models.shop import SHOP_STATUSES


class _RequestSchema(Schema):
    class Meta:
        unknown = EXCLUDE


# --------------------------------------------------------------------------- #
# Auth / users                                                                 #
# --------------------------------------------------------------------------- #
class RegisterSchema(_RequestSchema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    email = fields.Str(required=True, validate=validate.Length(min=3, max=254))
    password = fields.Str(required=True, load_only=True, validate=validate.Length(min=8, max=128))
    role = fields.Str(load_default="customer", validate=validate.OneOf(["customer", "vendor"]))


class LoginSchema(_RequestSchema):
    email = fields.Str(required=True)
    password = fields.Str(required=True, load_only=True)


class UpdateProfileSchema(_RequestSchema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=100))


# --------------------------------------------------------------------------- #
# Shops                                                                        #
# --------------------------------------------------------------------------- #
class CreateShopSchema(_RequestSchema):
    name = fields.Str(required=True, validate=validate.Length(min=2, max=100))
    description = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=2000))


class UpdateShopSchema(_RequestSchema):
    name = fields.Str(validate=validate.Length(min=2, max=100))
    description = fields.Str(allow_none=True, validate=validate.Length(max=2000))
    status = fields.Str(validate=validate.OneOf(SHOP_STATUSES))


# --------------------------------------------------------------------------- #
# Products                                                                     #
# --------------------------------------------------------------------------- #
class ProductSchema(_RequestSchema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=200))
    description = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=2000))
    price_cents = fields.Int(required=True, strict=True, validate=validate.Range(min=0, max=99999999))
    stock = fields.Int(load_default=0, strict=True, validate=validate.Range(min=0))
    tags = fields.List(fields.Str(validate=validate.Length(min=1, max=40)), load_default=list)
    shop_id = fields.Int(load_default=None, strict=True)


class ReviewSchema(_RequestSchema):
    rating = fields.Int(required=True, strict=True, validate=validate.Range(min=1, max=5))
    comment = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=2000))


# --------------------------------------------------------------------------- #
# Cart                                                                         #
# --------------------------------------------------------------------------- #
class AddCartItemSchema(_RequestSchema):
    product_id = fields.Int(required=True, strict=True, data_key="productId")
    quantity = fields.Int(load_default=1, strict=True, validate=validate.Range(min=1, max=99))


class UpdateCartItemSchema(_RequestSchema):
    product_id = fields.Int(required=True, strict=True, data_key="productId")
    quantity = fields.Int(required=True, strict=True, validate=validate.Range(min=0, max=99))


# --------------------------------------------------------------------------- #
# Orders                                                                       #
# --------------------------------------------------------------------------- #
class OrderLineSchema(_RequestSchema):
    product = fields.Int(required=True, strict=True)
    quantity = fields.Int(required=True, strict=True, validate=validate.Range(min=1, max=999))


class ShippingAddressSchema(_RequestSchema):
    full_name = fields.Str(data_key="fullName", load_default=None, allow_none=True)
    address = fields.Str(required=True, validate=validate.Length(min=1, max=200))
    city = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    postal_code = fields.Str(required=True, data_key="postalCode", validate=validate.Length(min=1, max=20))
    country = fields.Str(required=True, validate=validate.Length(min=2, max=100))
    phone = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=30))


class CreateOrderSchema(_RequestSchema):
    products = fields.List(
        fields.Nested(OrderLineSchema),
        required=True,
        validate=validate.Length(min=1, error="No order items"),
        error_messages={"required": "No order items"},
    )
    shipping_address = fields.Nested(
        ShippingAddressSchema,
        required=True,
        data_key="shippingAddress",
        error_messages={"required": "Please provide a shipping address"},
    )


class UpdateOrderStatusSchema(_RequestSchema):
    status = fields.Str(
        required=True,
        validate=validate.OneOf([s.value for s in SubOrderStatus]),
    )

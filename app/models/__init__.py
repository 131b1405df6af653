from app.models.business import Business
from app.models.user import User
from app.models.pos_category import PosCategory
from app.models.pos_product import PosProduct
from app.models.pos_product_variant_group import PosProductVariantGroup
from app.models.pos_product_variant_option import PosProductVariantOption
from app.models.pos_product_modifier import PosProductModifier
from app.models.catalog_audit_log import CatalogAuditLog

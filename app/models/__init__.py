from app.models.user import User
from app.models.court import Court
from app.models.pricing_rule import PricingRule
from app.models.booking_group import BookingGroup
from app.models.booking import Booking
from app.models.wallet import Wallet, WalletTransaction
from app.models.admin_action import AdminAction
from app.models.system_setting import SystemSetting

# This makes the models directory a Python package and ensures all models are loaded

import logging
import uuid

from core.business_config import MarketplaceConfig, marketplace_config
from core.errors import BadRequestError, ForbiddenError, NotFoundError, UnconfiguredError
from models.enums import InterestStatus, PropertyStatus
from models.models import PropertyInterest, User
from policy.marketplace_policy import MarketplacePolicy
from repos.interest_repo import InterestRepo
from repos.property_repo import PropertyRepo

logger = logging.getLogger(__name__)

PAYABLE_INTEREST_STATUSES = (InterestStatus.ACTIVE, InterestStatus.PURCHASED)


class InterestService:
    def __init__(self, db, config: MarketplaceConfig = marketplace_config):
        self.db = db
        self.config = config
        self.interest_repo: InterestRepo = InterestRepo(db)
        self.property_repo: PropertyRepo = PropertyRepo(db)
        self.policy = MarketplacePolicy()

    async def express_interest(
        self, user_id: uuid.UUID, property_id: uuid.UUID
    ) -> PropertyInterest:
        prop = await self.property_repo.get_by_id(property_id)
        if not prop:
            raise NotFoundError("Property not found")
        if prop.status == PropertyStatus.SOLD:
            raise BadRequestError("This property has already been sold")
        if prop.owner_id == user_id:
            raise BadRequestError("You cannot express interest in your own property")

        interest = await self.interest_repo.upsert_active(user_id, property_id)
        logger.info(f"User {user_id} interested in property {property_id}")
        return interest

    async def get_payment_details(self, user: User, property_id: uuid.UUID) -> dict:
        if not await self.policy.can_view_payment_details(user):
            raise ForbiddenError("Admins cannot request buyer payment details")

        prop = await self.property_repo.get_by_id(property_id)
        if not prop:
            raise NotFoundError("Property not found")

        interest = await self.interest_repo.get(user.id, property_id)
        if not interest or interest.status not in PAYABLE_INTEREST_STATUSES:
            raise ForbiddenError(
                "Express interest in this property before requesting payment details"
            )

        if not self.config.has_company_bank_details:
            logger.error("Company bank details are missing from configuration")
            raise UnconfiguredError("Company payment details are not configured")

        return {
            "property_id": prop.id,
            "property_title": prop.title,
            "amount": prop.price,
            "bank_name": self.config.company_bank_name,
            "account_name": self.config.company_account_name,
            "account_number": self.config.company_account_number,
            "instructions": self.config.company_payment_instructions
            or f"Use '{prop.title}' as the transfer narration.",
        }

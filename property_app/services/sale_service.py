import logging

from sqlalchemy.exc import SQLAlchemyError

from core.business_config import MarketplaceConfig, marketplace_config
from core.date_helper import utcnow
from core.errors import BadRequestError, ForbiddenError, NotFoundError
from models.enums import FinanceStatus, PropertyStatus, SaleStatus
from models.models import Sale, User
from policy.marketplace_policy import MarketplacePolicy
from repos.interest_repo import InterestRepo
from repos.property_repo import PropertyRepo
from repos.sale_repo import CommissionRepo, SaleRepo
from repos.user_repo import UserRepo

logger = logging.getLogger(__name__)


class SaleService:
    def __init__(self, db, config: MarketplaceConfig = marketplace_config):
        self.db = db
        self.config = config
        self.sale_repo: SaleRepo = SaleRepo(db)
        self.commission_repo: CommissionRepo = CommissionRepo(db)
        self.property_repo: PropertyRepo = PropertyRepo(db)
        self.interest_repo: InterestRepo = InterestRepo(db)
        self.user_repo: UserRepo = UserRepo(db)
        self.policy = MarketplacePolicy()

    async def mark_as_sold(self, admin: User, data) -> Sale:
        """Record an offline sale and take the property off the market at once.

        The property goes SOLD before finance has confirmed the money, so no
        second buyer can be sold the same unit while the review is pending.
        """
        if not await self.policy.can_mark_sale(admin):
            raise ForbiddenError("Only admins/agents can mark a sale.")

        prop = await self.property_repo.get_by_id(data.property_id)
        if not prop:
            raise NotFoundError("Property not found")
        if prop.status == PropertyStatus.SOLD:
            raise BadRequestError("Property has already been sold")
        if not await self.policy.can_mark_sale_for(admin, prop):
            raise ForbiddenError("You are not allowed to mark this property as sold.")

        buyer = await self.user_repo.by_id(data.buyer_id)
        if not buyer:
            raise NotFoundError("Buyer not found")

        now = utcnow()
        sale = Sale(
            property_id=prop.id,
            buyer_id=buyer.id,
            seller_id=admin.id,
            amount=data.amount,
            payment_method=data.payment_method,
            payment_reference=data.payment_reference,
            payment_proof_url=data.payment_proof_url,
            notes=data.notes,
            status=SaleStatus.PAYMENT_SUBMITTED,
            finance_status=FinanceStatus.PENDING,
            company_account_paid=False,
            marked_sold_at=now,
            created_at=now,
        )

        try:
            if not await self.property_repo.mark_sold(prop.id):
                await self.sale_repo.rollback()
                raise BadRequestError("Property has already been sold")

            await self.sale_repo.stage(sale)
            await self.interest_repo.settle_for_sale(prop.id, buyer.id)
            await self.sale_repo.commit()
        except SQLAlchemyError:
            await self.sale_repo.rollback()
            raise

        logger.info(f"Sale {sale.id} submitted for property {sale.property_id}")
        return await self.sale_repo.get_by_id(sale.id)

    async def review_sale(self, reviewer: User, data) -> Sale:
        if not await self.policy.can_review_sale(reviewer):
            raise ForbiddenError("Only finance/admin can review sales.")

        sale = await self.sale_repo.get_by_id(data.sale_id)
        if not sale:
            raise NotFoundError("Sale not found")
        if sale.finance_status != FinanceStatus.PENDING:
            raise ForbiddenError("Sale already reviewed.")

        sale_id = sale.id
        seller_id = sale.seller_id
        amount = sale.amount

        try:
            reviewed = await self.sale_repo.record_review(
                sale_id,
                reviewer_id=reviewer.id,
                decision=data.finance_status,
                comment=data.finance_comment,
                now=utcnow(),
            )
            if not reviewed:
                await self.sale_repo.rollback()
                raise ForbiddenError("Sale already reviewed.")

            if data.finance_status == FinanceStatus.CONFIRMED:
                await self.commission_repo.stage(
                    sale_id=sale_id,
                    admin_id=seller_id,
                    amount=self.config.commission_for(amount),
                )
            await self.sale_repo.commit()
        except SQLAlchemyError:
            await self.sale_repo.rollback()
            raise

        logger.info(f"Sale {sale_id} reviewed: {data.finance_status.value}")
        return await self.sale_repo.get_by_id(sale_id)

    async def list_pending_sales(
        self, reviewer: User, page: int = 1, per_page: int = 20
    ) -> list[Sale]:
        if not await self.policy.can_review_sale(reviewer):
            raise ForbiddenError("Only finance/admin can review sales.")
        return await self.sale_repo.list_pending(page, per_page)

    async def list_sale_commissions(self, reviewer: User, sale_id) -> list:
        if not await self.policy.can_review_sale(reviewer):
            raise ForbiddenError("Only finance/admin can view commissions.")
        if not await self.sale_repo.get_by_id(sale_id):
            raise NotFoundError("Sale not found")
        return await self.commission_repo.list_for_sale(sale_id)

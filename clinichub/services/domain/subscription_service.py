"""
Subscription Domain Service

Plans are seeded from the built-in plan table; a persisted plan's ``max_*``
columns are what onboarding enforces.
"""

from typing import List, Optional

from clinichub.models.accounts import Subscription, SubscriptionPlan
from clinichub.services.base import BaseService
from clinichub.services.onboarding.plan_config import list_configurations

PLAN_LIMIT_COLUMNS = {
    "organization": "max_organizations",
    "complex": "max_complexes",
    "clinic": "max_clinics",
    "department": "max_departments",
    "service": "max_services",
}


class SubscriptionService(BaseService):

    def __init__(self):
        super().__init__("SubscriptionService")
        self.initialize()

    def get_subscription_by_user(self, uow, user_id: int) -> Optional[Subscription]:
        return (
            uow.session.query(Subscription)
            .filter(Subscription.user_id == user_id, Subscription.status == "active")
            .order_by(Subscription.id.desc())
            .first()
        )

    def get_plan(self, uow, plan_id: int) -> Optional[SubscriptionPlan]:
        return uow.session.get(SubscriptionPlan, plan_id)

    def get_plan_by_name(self, uow, name: str) -> Optional[SubscriptionPlan]:
        return (
            uow.session.query(SubscriptionPlan)
            .filter(SubscriptionPlan.name == name.strip().lower(), SubscriptionPlan.is_active.is_(True))
            .first()
        )

    def subscribe(self, uow, user_id: int, plan: SubscriptionPlan) -> Subscription:
        """Attach ``plan`` to the user, switching an existing subscription over."""
        subscription = self.get_subscription_by_user(uow, user_id)
        if subscription is None:
            subscription = Subscription(user_id=user_id, plan_id=plan.id, plan_type=plan.name, status="active")
            uow.add(subscription)
            self.logger.info(f"Subscribed user {user_id} to the {plan.name} plan")
        elif subscription.plan_id != plan.id:
            self.logger.info(f"Switching user {user_id} from the {subscription.plan_type} plan to {plan.name}")
            subscription.plan_id = plan.id
            subscription.plan_type = plan.name
        uow.flush()
        return subscription

    def ensure_default_plans(self, uow) -> List[SubscriptionPlan]:
        """Insert any built-in plan missing from storage; existing plans are left alone."""
        plans = []
        for config in list_configurations():
            plan = uow.session.query(SubscriptionPlan).filter(SubscriptionPlan.name == config.plan_type.value).first()
            if plan is None:
                plan = SubscriptionPlan(name=config.plan_type.value, display_name=config.name)
                for entity_type, column in PLAN_LIMIT_COLUMNS.items():
                    setattr(plan, column, config.limits.get(entity_type))
                uow.add(plan)
                self.logger.info(f"Seeded subscription plan {plan.name}")
            plans.append(plan)
        uow.flush()
        return plans

"""Business logic services."""

from leadflow.services.batch import generate_monthly_commissions
from leadflow.services.commission_runs import CommissionRunStore, get_monthly_commission
from leadflow.services.dispatch_commission import DispatchCommissionCalculator
from leadflow.services.lifecycle import LeadLifecycleController
from leadflow.services.policies import PolicyStore
from leadflow.services.sales_commission import SalesCommissionCalculator

__all__ = [
    "CommissionRunStore",
    "DispatchCommissionCalculator",
    "LeadLifecycleController",
    "PolicyStore",
    "SalesCommissionCalculator",
    "generate_monthly_commissions",
    "get_monthly_commission",
]

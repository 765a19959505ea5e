from core.budget.monitor import BudgetMonitor, BudgetCheckResult, BudgetRunReport, period_bounds

__all__ = ['BudgetMonitor', 'BudgetCheckResult', 'BudgetRunReport', 'period_bounds']

from .abstract_event_handler import AbstractEventHandler
from .balances_events import BalancesEventHandler
from .claims_events import ClaimsEventHandler
from .staking_events import StakingEventHandler
from .missing_events import MissingEventHandler
from .utils import event_error_handling

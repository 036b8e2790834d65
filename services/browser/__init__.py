from .session import BROWSER_ARGS, BrowserSession, PageContext
from .stealth import StealthConfigurator

__all__ = ['BROWSER_ARGS', 'BrowserSession', 'PageContext', 'StealthConfigurator']

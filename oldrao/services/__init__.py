"""
                        Services Module

Business services used by the route handlers.

Services:
    - events: in-process broadcast of live order updates (server-sent events)
    - excel_manager: file-locked Excel export of orders
"""

from oldrao.services.excel_manager import ExcelManager

__all__ = ["ExcelManager"]

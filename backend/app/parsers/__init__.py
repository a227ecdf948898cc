from .trade_history_parser import TradeHistoryParser, ParsedTradeFile, ParsedTrade, auto_map_columns

__all__ = ["TradeHistoryParser", "ParsedTradeFile", "ParsedTrade", "auto_map_columns"]

"""
服務層

這個 package 包含純計算與查詢邏輯，不負責狀態轉換：
- NamingService：房間代碼生成與格式化
- PresenceService：在線狀態推導
- ScoringService：總分、契合度、評語
- DeckService：題庫載入與抽題
- StateService：state_version 與房間快照
- HistoryService：回合紀錄
- CleanupService：閒置房間清理
"""

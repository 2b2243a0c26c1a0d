"""
核心業務邏輯層

這個 package 包含所有核心業務邏輯，包括：
- 狀態機：集中管理 Room 狀態轉換
- Manager：管理 Room / Player / Round 的生命週期
- Locks：並發控制工具
- Exceptions：業務異常分類
"""

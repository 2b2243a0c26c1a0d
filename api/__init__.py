"""
API 層

這個 package 只負責 HTTP：解析 request、呼叫 core 的 Manager、
把業務異常轉成 HTTP 狀態碼。不放任何遊戲規則。
"""

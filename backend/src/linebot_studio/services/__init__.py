"""服務層"""

"""
코어 레이어

상수, 타입, 설정, 로깅 정의.
"""

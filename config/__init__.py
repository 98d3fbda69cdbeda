"""
Config 패키지

설정 관리를 위한 포트/어댑터 패턴 구현
- 포트: Core에서 필요한 설정 인터페이스 추상화 (ConfigPort)
- 어댑터: Pydantic Settings와 연동
- Factory: 환경별 설정 클래스 자동 선택
"""

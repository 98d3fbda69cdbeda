"""
Domain 패키지

도메인 엔티티, 예외, 포트 인터페이스를 정의합니다.
외부 의존성 없이 순수한 비즈니스 규칙만 포함합니다.

주요 엔티티:
- Account: Gmail 계정과 토큰, 동기화 커서
- Message: 미러링된 메일 메시지
- Label: 미러링된 라벨
- SyncSummary: 동기화 결과
- SyncOptions: 동기화 파라미터
"""

"""
eb_deploy_kit
-------------

Node.js 프로젝트를 zip 번들로 묶어 AWS Elastic Beanstalk 환경에 배포하는 CLI 패키지.
하나의 아티팩트를 빌드한 뒤 설정 파일(ebdeploy.yml)에 나열된 여러 환경에 순서대로 배포하고,
각 환경이 다시 Ready 가 될 때까지 기다리는 것을 목표로 한다.
"""

__version__ = "0.3.0"

__all__ = [
    "config",
    "orchestrator",
]

"""
Main entry point for the hug relay service.
"""

import logging
import sys
import argparse

import uvicorn

from config.manager import get_config_manager, init_config
from services.exceptions import ConfigurationError

# 设置启动日志，服务启动后由 configure_logging 接管
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """解析命令行参数"""
    parser = argparse.ArgumentParser(description="Hug Relay Service")

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="配置文件路径 (默认使用内置配置和环境变量)"
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="服务器主机地址 (覆盖配置文件)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="服务器端口 (覆盖配置文件和 PORT 环境变量)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="日志级别"
    )

    return parser.parse_args(argv)


def main(argv=None):
    """主函数"""
    args = parse_args(argv)

    try:
        # 初始化配置
        logger.info("Initializing configuration...")
        config = init_config(args.config)

        # 启动检查：没有 API 密钥时在监听端口之前退出
        get_config_manager().ensure_api_key()
    except (ConfigurationError, ValueError, FileNotFoundError) as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    if args.log_level:
        config.log.level = args.log_level

    host = args.host or config.server.host
    port = args.port or config.server.port

    from api import build_app
    app = build_app(config)

    logger.info(f"Hug relay backend server listening on http://{host}:{port}")
    logger.info(f"Gemini model: {config.gemini.model}")

    try:
        uvicorn.run(
            app,
            host=host,
            port=port,
            log_level=config.log.level.lower(),
            access_log=True
        )
    except KeyboardInterrupt:
        logger.info("Service interrupted by user")


if __name__ == "__main__":
    main()

"""
服务层

上游客户端、请求处理、错误处理和日志。
"""

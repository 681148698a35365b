"""Walk-through of leveled, structured and contextual logging."""

from __future__ import annotations

import argparse
import sys
import time
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import TextIO

from opskit.logdemo.logger import ConsoleFormatter, JsonFormatter, Level, Logger, parse_level

APP_NAME = "zerolog-demo"
VERSION = "1.0.0"


def setup_logging(
    log_level: str = "info",
    log_format: str = "console",
    prettify: bool = False,
    stream: TextIO | None = None,
) -> Logger:
    """Build the application logger for the chosen level and format."""
    stream = stream or sys.stdout
    try:
        level = parse_level(log_level)
    except ValueError:
        stream.write(f"Неверный уровень логирования '{log_level}', используется 'info'\n")
        level = Level.INFO

    if log_format == "console" or prettify:
        formatter: ConsoleFormatter | JsonFormatter = ConsoleFormatter("%H:%M:%S", colored=prettify)
    else:
        formatter = JsonFormatter()

    def sink(timestamp, event_level, message, fields):
        stream.write(formatter.format(timestamp, event_level, message, fields) + "\n")

    return Logger(sink, level).bind(app=APP_NAME, version=VERSION)


def demonstrate_log_levels(logger: Logger, log_level: str, out: TextIO | None = None) -> None:
    """Emit one event at every level."""
    (out or sys.stdout).write(f"\n🎯 Демонстрация уровней логирования:\nТекущий уровень: {log_level}\n\n")
    logger.trace("Это TRACE сообщение - самый детальный уровень логирования", function="demonstrateLogLevels")
    logger.debug("Это DEBUG сообщение - отладочная информация", step=1, action="demonstration")
    logger.info("Это INFO сообщение - общая информация о работе приложения", status="running")
    logger.warn("Это WARN сообщение - предупреждение о потенциальной проблеме", issue="deprecated_function")
    logger.error("Это ERROR сообщение - информация об ошибке", error_type="demo_error")


def demonstrate_structured_logging(logger: Logger, out: TextIO | None = None) -> None:
    """Emit events carrying fields of many types."""
    (out or sys.stdout).write("\n📊 Демонстрация структурированного логирования:\n")
    logger.info(
        "Пользователь вошел в систему",
        user_id="user123",
        age=25,
        balance=1234.56,
        is_premium=True,
        login_time=datetime.now().astimezone(),
        session_duration=timedelta(minutes=45),
        roles=["user", "admin"],
    )
    logger.info(
        "HTTP запрос обработан",
        method="GET",
        path="/api/users",
        status_code=200,
        response_time=timedelta(milliseconds=150),
        response_size=1024,
        user_agent="Mozilla/5.0",
    )
    logger.error(
        "Ошибка подключения к базе данных",
        error=ConnectionError("connection timeout"),
        service="database",
        host="db.example.com",
        port=5432,
        retry_count=3,
    )


def demonstrate_contextual_logging(logger: Logger, out: TextIO | None = None) -> None:
    """Show loggers that carry request context through nested work."""
    (out or sys.stdout).write("\n🔗 Демонстрация контекстного логирования:\n")
    context_logger = logger.bind(request_id="req-12345", user_id="user456")
    context_logger.info("Начало обработки запроса")
    process_order(context_logger)
    context_logger.info("Завершение обработки запроса")
    demonstrate_sub_components(logger)


def process_order(logger: Logger, sleep: Callable[[float], None] = time.sleep) -> None:
    """Log the steps of handling a simulated order."""
    order_logger = logger.bind(component="order_processor", order_id="order-789")
    order_logger.debug("Валидация заказа")
    order_logger.info("Заказ валиден, начинаем обработку", amount=99.99, currency="USD")
    sleep(0.1)
    order_logger.warn("Низкий уровень запасов", inventory_level=5)
    order_logger.info("Заказ успешно обработан", status="completed")


def demonstrate_sub_components(logger: Logger) -> None:
    """Log from loggers bound to database, cache and external API components."""
    db_logger = logger.bind(component="database", table="users")
    db_logger.debug("Выполнение SQL запроса", query="SELECT * FROM users WHERE id = ?", params=[123])
    db_logger.info("Запрос выполнен успешно", rows_affected=1, query_time=timedelta(milliseconds=25))

    cache_logger = logger.bind(component="cache", key="user:123")
    cache_logger.debug("Поиск в кеше")
    cache_logger.info("Промах кеша, данные загружены из БД", hit=False)

    api_logger = logger.bind(component="external_api", service="payment_gateway")
    api_logger.info(
        "Отправка запроса к внешнему API", endpoint="https://api.payments.com/charge", method="POST"
    )
    api_logger.error("Внешний сервис недоступен", status_code=503, error="Service Unavailable")


def run_demo(
    log_level: str = "info",
    log_format: str = "console",
    prettify: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Configure logging and run every demonstration."""
    stream = stream or sys.stdout
    logger = setup_logging(log_level, log_format, prettify, stream)
    demonstrate_log_levels(logger, log_level, stream)
    demonstrate_structured_logging(logger, stream)
    demonstrate_contextual_logging(logger, stream)


def main(argv: list[str] | None = None) -> int:
    """Run the demo from the command line and return the exit status."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME, description="Демонстрация zerolog с различными уровнями логирования"
    )
    parser.add_argument("--log-level", default="info", help="Уровень логирования (trace, debug, info, warn, error)")
    parser.add_argument("--log-format", default="console", help="Формат логов (json, console)")
    parser.add_argument("--prettify", action="store_true", help="Красивый консольный вывод с цветами")
    args = parser.parse_args(argv)
    try:
        run_demo(args.log_level, args.log_format, args.prettify, sys.stdout)
    except OSError as exc:
        print(f"Ошибка: {exc}", file=sys.stderr)
        return 1
    return 0
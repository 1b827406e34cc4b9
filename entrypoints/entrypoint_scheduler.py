#!/usr/bin/env python3
# entrypoint_scheduler.py
"""
Точка входа для запуска планировщика группировки в Docker контейнере.
"""

from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path

# Добавляем корневую директорию проекта в путь
project_root = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(project_root))

from main import main


if __name__ == "__main__":
    instance_id = os.getenv("SCHEDULER_INSTANCE_ID", "0")
    print(f"⚙️  Запуск планировщика группировки, instance #{instance_id}")

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass

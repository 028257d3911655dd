"""默认任务目录

前端代码库诊断得出的七项整改任务及其依赖关系，
由 TaskGuardian.seed_default_tasks() 创建。
"""

from .models.enums import TaskKind, TaskPriority
from .models.task import TaskCatalog, TaskDefinition

DEFAULT_CATALOG = TaskCatalog(
    definitions=[
        TaskDefinition(
            description="Remove the duplicated CartSidebar component",
            kind=TaskKind.COMPONENT_FIX,
            priority=TaskPriority.HIGH,
            estimated_effort=30,
        ),
        TaskDefinition(
            description="Standardize React imports across the application",
            kind=TaskKind.CODE_REFACTOR,
            priority=TaskPriority.MEDIUM,
            estimated_effort=45,
        ),
        TaskDefinition(
            description="Add global error boundaries",
            kind=TaskKind.STATE_MANAGEMENT,
            priority=TaskPriority.HIGH,
            estimated_effort=60,
        ),
        TaskDefinition(
            description="Improve real-time form validation",
            kind=TaskKind.VALIDATION_FIX,
            priority=TaskPriority.HIGH,
            estimated_effort=90,
        ),
        TaskDefinition(
            description="Reduce bundle size and add code splitting",
            kind=TaskKind.PERFORMANCE_OPT,
            priority=TaskPriority.MEDIUM,
            estimated_effort=120,
        ),
        TaskDefinition(
            description="Add skeleton loaders and loading states",
            kind=TaskKind.UX_IMPROVEMENT,
            priority=TaskPriority.MEDIUM,
            estimated_effort=75,
        ),
        TaskDefinition(
            description="Add tests for critical components",
            kind=TaskKind.TEST_IMPLEMENTATION,
            priority=TaskPriority.LOW,
            estimated_effort=180,
        ),
    ],
    dependencies={
        # error boundaries 依赖移除重复组件
        2: [0],
        # 表单校验依赖 error boundaries
        3: [2],
        # UX 改进依赖表单校验
        5: [3],
        # 测试依赖其余改动稳定
        6: [0, 2, 3],
    },
)

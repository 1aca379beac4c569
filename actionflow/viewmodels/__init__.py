"""ViewModel package for UI state and command surfaces.

Call context:
    ``actionflow/app/task_presenter.py`` binds concrete viewmodels from this
    package to orchestrator results.

Dependencies:
    Modules in this package depend on domain types only. I/O adapters and
    use-case orchestration remain outside.

Responsibilities:
    - Expose mutable UI state (step, action, status, log, controls).
    - Keep MVVM boundaries explicit by avoiding transport or persistence logic.
"""

"""
Board subsystem.

Components:
- board_state.py: immutable board snapshot and its transitions
- drag_engine.py: drop target resolution and status transition planning
- api_client.py: async TaskBoardClient over the in-process TaskApi
- board_controller.py: loads the board, runs mutations, reloads after each one
"""

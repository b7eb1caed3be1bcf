"""Interactive console for the contact manager.

Modules:
- console: prompt and output primitives
- formatters: text rendering of contacts, users and statistics
- handlers: one handler per menu operation
- menus: role menus and the menu loop
- cli: login loop and process entry point
"""

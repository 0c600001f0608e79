"""TaskFlow - task persistence, synchronization and derived views."""

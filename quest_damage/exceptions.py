"""
Custom exceptions for the quest damage engine.
Provides specific exception types for better error handling and recovery.
"""


class DamageEngineException(Exception):
    """Base exception for the quest damage engine"""
    pass


class CalculationInProgressException(DamageEngineException):
    """Raised when a damage calculation pass is already running"""
    def __init__(self):
        super().__init__("Damage calculation already in progress")


class QuestNotFoundException(DamageEngineException):
    """Raised when a quest is not found"""
    def __init__(self, quest_id: int):
        self.quest_id = quest_id
        super().__init__(f"Quest with ID {quest_id} not found")


class TrackerNotFoundException(DamageEngineException):
    """Raised when a damage tracker is not found"""
    def __init__(self, tracker_id: int):
        self.tracker_id = tracker_id
        super().__init__(f"Damage tracker with ID {tracker_id} not found")


class UnknownRecurrenceTypeException(DamageEngineException):
    """Raised when no damage policy exists for a recurrence type"""
    def __init__(self, recurrence_type: str):
        self.recurrence_type = recurrence_type
        super().__init__(f"No damage policy for recurrence type: {recurrence_type}")


class InvalidDamageAmountException(DamageEngineException):
    """Raised when damage to apply is not a positive integer"""
    def __init__(self, amount: int):
        self.amount = amount
        super().__init__(f"Invalid damage amount: {amount}. Expected a positive integer")


class HealthUpdateException(DamageEngineException):
    """Raised when the player's health pool could not be updated"""
    def __init__(self, details: str):
        self.details = details
        super().__init__(f"Health update failed: {details}")


class DatabaseException(DamageEngineException):
    """Raised when database operations fail"""
    def __init__(self, operation: str, details: str):
        self.operation = operation
        self.details = details
        super().__init__(f"Database {operation} failed: {details}")


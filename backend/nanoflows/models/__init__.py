# Re-export all models for convenient imports
from nanoflows.models.user import User, UserRole
from nanoflows.models.course import Course, CourseLevel, Module, Lesson, LessonContentType
from nanoflows.models.assessment import Quiz, QuizAttempt, Assignment, AssignmentSubmission, SubmissionStatus
from nanoflows.models.learning import UserProgress, Certificate, Note, Discussion, DiscussionReply
from nanoflows.models.billing import Purchase, PurchaseSource, PaymentOrder, PaymentOrderStatus
from nanoflows.models.notification import Notification, NotificationType
from nanoflows.models.content import HeroSlide, AboutSection, AITool, Job
from nanoflows.models.store import (
    Product,
    ProductCategory,
    CartItem,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
    WishlistItem,
    Review,
    CANCELLABLE_STATUSES,
)

__all__ = [
    # User
    "User",
    "UserRole",
    # Courses
    "Course",
    "CourseLevel",
    "Module",
    "Lesson",
    "LessonContentType",
    # Assessment
    "Quiz",
    "QuizAttempt",
    "Assignment",
    "AssignmentSubmission",
    "SubmissionStatus",
    # Learning
    "UserProgress",
    "Certificate",
    "Note",
    "Discussion",
    "DiscussionReply",
    # Billing
    "Purchase",
    "PurchaseSource",
    "PaymentOrder",
    "PaymentOrderStatus",
    # Notifications
    "Notification",
    "NotificationType",
    # Site content
    "HeroSlide",
    "AboutSection",
    "AITool",
    "Job",
    # Storefront
    "Product",
    "ProductCategory",
    "CartItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    "WishlistItem",
    "Review",
    "CANCELLABLE_STATUSES",
]

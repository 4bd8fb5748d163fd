"""
Database Schemas for EduMate

Each Pydantic model represents a collection in MongoDB. The collection name is the
lowercase of the class name. Embedded models describe sub-documents.
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from bson import ObjectId
from pydantic import BaseModel, Field


def new_id() -> str:
    return str(ObjectId())


Difficulty = Literal["beginner", "intermediate", "advanced"]
TopicStatus = Literal["not_started", "in_progress", "completed", "skipped"]
ResourceType = Literal["video", "article", "book", "practice", "quiz"]


# ----------------- User -----------------

class NotificationSettings(BaseModel):
    email: bool = True
    push: bool = True
    study_reminders: bool = True


class Preferences(BaseModel):
    study_goals: List[Literal["exam_prep", "skill_building", "certification", "general_learning"]] = Field(default_factory=list)
    learning_style: Literal["visual", "auditory", "kinesthetic", "reading"] = "visual"
    difficulty_level: Difficulty = "beginner"
    study_time_preference: Literal["morning", "afternoon", "evening", "night"] = "evening"
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)


class UserStats(BaseModel):
    total_study_time: int = 0  # minutes
    topics_completed: int = 0
    quizzes_completed: int = 0
    average_score: float = 0
    streak: int = 0
    last_study_date: Optional[datetime] = None


class User(BaseModel):
    username: str = Field(..., max_length=30)
    first_name: str = Field(..., max_length=50)
    last_name: str = Field(..., max_length=50)
    email: str
    password: str
    role: Literal["student", "instructor", "admin"] = "student"
    avatar: Optional[str] = None
    preferences: Preferences = Field(default_factory=Preferences)
    stats: UserStats = Field(default_factory=UserStats)
    is_active: bool = True
    last_login: datetime = Field(default_factory=datetime.utcnow)


# ----------------- Study plan -----------------

class Resource(BaseModel):
    type: ResourceType = "article"
    title: str = ""
    url: Optional[str] = None
    description: Optional[str] = None


class Topic(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str
    description: Optional[str] = Field(default=None, max_length=300)
    order: int
    estimated_time: int  # minutes
    difficulty: Literal["easy", "medium", "hard"] = "medium"
    resources: List[Resource] = Field(default_factory=list)
    status: TopicStatus = "not_started"
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None


class DayContent(BaseModel):
    overview: str = ""
    key_points: List[str] = Field(default_factory=list)
    examples: List[str] = Field(default_factory=list)
    exercises: List[str] = Field(default_factory=list)


class Activity(BaseModel):
    type: Literal["reading", "practice", "quiz", "project", "review"] = "reading"
    description: str = ""
    duration: Optional[int] = None
    completed: bool = False
    completed_at: Optional[datetime] = None


class AssessmentItem(BaseModel):
    question: str = ""
    options: List[str] = Field(default_factory=list)
    correct: Optional[int] = None
    explanation: Optional[str] = None


class DailyContent(BaseModel):
    day: int
    date: datetime
    title: str
    objectives: List[str] = Field(default_factory=list)
    content: DayContent = Field(default_factory=DayContent)
    resources: List[Resource] = Field(default_factory=list)
    activities: List[Activity] = Field(default_factory=list)
    assessment: List[AssessmentItem] = Field(default_factory=list)
    homework: str = ""
    total_time: int = 90
    time_spent: int = 0
    status: Literal["not_started", "in_progress", "completed"] = "not_started"


class PlanProgress(BaseModel):
    completed_topics: int = 0
    total_topics: int = 0
    percentage: int = 0
    time_spent: int = 0
    last_studied: Optional[datetime] = None


class PlanSchedule(BaseModel):
    start_date: datetime
    end_date: datetime
    study_days: List[str] = Field(default_factory=lambda: ["monday", "tuesday", "wednesday", "thursday", "friday"])
    daily_study_time: int = 60


class StudyPlan(BaseModel):
    user_id: str
    title: str = Field(..., max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    subject: str
    difficulty: Difficulty
    estimated_duration: int = Field(..., ge=1)  # days
    topics: List[Topic] = Field(default_factory=list)
    daily_content: List[DailyContent] = Field(default_factory=list)
    progress: PlanProgress = Field(default_factory=PlanProgress)
    schedule: PlanSchedule
    ai_generated: bool = False
    ai_prompt: Optional[str] = Field(default=None, max_length=1000)
    ai_summary: Optional[str] = None
    generation_source: str = "template"
    tags: List[str] = Field(default_factory=list)
    is_public: bool = False
    status: Literal["draft", "active", "completed", "paused", "archived"] = "draft"


# ----------------- Quizzes -----------------

class QuizQuestion(BaseModel):
    question: str
    options: List[str]
    correct: int
    explanation: str = ""
    points: int = Field(default=1, ge=1)


class QuizStats(BaseModel):
    total_attempts: int = 0
    average_score: float = 0


class Quiz(BaseModel):
    title: str = Field(..., max_length=100)
    description: Optional[str] = None
    subject: Optional[str] = None
    topic: str
    difficulty: str
    questions: List[QuizQuestion]
    is_public: bool = True
    access_code: Optional[str] = None
    participants: List[str] = Field(default_factory=list)
    creator_id: str
    ai_generated: bool = False
    generation_source: str = "manual"
    study_plan_id: Optional[str] = None
    stats: QuizStats = Field(default_factory=QuizStats)
    status: Literal["draft", "published", "archived"] = "published"


class QuestionResult(BaseModel):
    question_index: int
    user_answer: Optional[int] = None
    correct_answer: int
    is_correct: bool


class QuizAttempt(BaseModel):
    user_id: str
    quiz_id: str
    answers: List[Optional[int]]
    results: List[QuestionResult]
    score: float
    correct_answers: int
    total_questions: int
    attempt_number: int
    status: Literal["in_progress", "completed", "abandoned", "timed_out"] = "completed"
    completed_at: datetime = Field(default_factory=datetime.utcnow)


# ----------------- Study groups -----------------

class GroupMember(BaseModel):
    user_id: str
    role: Literal["admin", "moderator", "member"] = "member"
    joined_at: datetime = Field(default_factory=datetime.utcnow)
    is_active: bool = True


class GroupSettings(BaseModel):
    max_members: int = Field(default=50, ge=2)
    is_private: bool = False
    require_approval: bool = False


class GroupMessage(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    content: str
    type: Literal["text", "link", "file"] = "text"
    created_at: datetime = Field(default_factory=datetime.utcnow)


class GroupStats(BaseModel):
    total_members: int = 0
    active_members: int = 0
    total_messages: int = 0


class StudyGroup(BaseModel):
    name: str = Field(..., max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    subject: str
    topics: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    creator_id: str
    members: List[GroupMember] = Field(default_factory=list)
    settings: GroupSettings = Field(default_factory=GroupSettings)
    messages: List[GroupMessage] = Field(default_factory=list)
    stats: GroupStats = Field(default_factory=GroupStats)
    status: Literal["active", "inactive", "archived"] = "active"


# ----------------- AI assistant -----------------

class MessageMetadata(BaseModel):
    provider: Optional[str] = None
    model: Optional[str] = None
    response_time: Optional[int] = None  # milliseconds
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class ConversationMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str
    metadata: MessageMetadata = Field(default_factory=MessageMetadata)


class ConversationSummary(BaseModel):
    total_messages: int = 0
    average_response_time: int = 0


class AIConversation(BaseModel):
    user_id: str
    agent_id: Optional[str] = None
    title: Optional[str] = Field(default=None, max_length=100)
    context: Dict[str, Any] = Field(default_factory=dict)
    messages: List[ConversationMessage] = Field(default_factory=list)
    summary: ConversationSummary = Field(default_factory=ConversationSummary)
    status: Literal["active", "completed", "archived"] = "active"
    last_activity: datetime = Field(default_factory=datetime.utcnow)


class AgentConfiguration(BaseModel):
    provider: Literal["auto", "groq", "gemini", "openai"] = "auto"
    model: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 1000
    system_prompt: str


class AgentUsage(BaseModel):
    total_interactions: int = 0
    average_response_time: int = 0
    last_used: Optional[datetime] = None


class AIAgent(BaseModel):
    name: str = Field(..., max_length=100)
    type: Literal["tutor", "quiz_generator", "study_planner", "content_analyzer", "progress_tracker"] = "tutor"
    description: Optional[str] = Field(default=None, max_length=500)
    capabilities: List[str] = Field(default_factory=list)
    configuration: AgentConfiguration
    is_public: bool = True
    creator_id: str
    usage: AgentUsage = Field(default_factory=AgentUsage)
    status: Literal["active", "inactive", "maintenance", "deprecated"] = "active"
    is_active: bool = True


# ----------------- Progress tracking -----------------

class SectionCompletion(BaseModel):
    name: str
    time_spent: int = 0  # minutes
    completed_at: datetime = Field(default_factory=datetime.utcnow)


class StudySession(BaseModel):
    started_at: datetime = Field(default_factory=datetime.utcnow)
    ended_at: Optional[datetime] = None
    duration: int = 0  # minutes
    sections_completed: List[SectionCompletion] = Field(default_factory=list)
    completed: bool = False


class StudyProgress(BaseModel):
    user_id: str
    study_plan_id: str
    topic_id: str
    sessions: List[StudySession] = Field(default_factory=list)
    total_time: int = 0
    status: Literal["in_progress", "completed"] = "in_progress"
    last_session_at: Optional[datetime] = None

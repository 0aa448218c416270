from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, selectinload
from uuid import UUID

from kanasu.core.database import get_db, delete_instance
from kanasu.core.logging_config import get_logger
from kanasu.core.response import success_response
from kanasu.models.topic import Topic
from kanasu.schemas.topic import TopicCreate, TopicUpdate, TopicRead, TopicDetail

logger = get_logger(__name__)

router = APIRouter()


def _get_topic(db: Session, topic_id: UUID) -> Topic:
    topic = (
        db.query(Topic)
        .options(selectinload(Topic.questions))
        .filter(Topic.id == topic_id)
        .first()
    )
    if not topic:
        raise HTTPException(status_code=404, detail="Topic not found")
    return topic


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_topic(topic_data: TopicCreate, db: Session = Depends(get_db)):
    topic = Topic(name=topic_data.name, version=topic_data.version)
    db.add(topic)
    db.commit()
    db.refresh(topic)

    logger.info(f"Topic created: {topic.name}", extra={"extra_data": {"topic_id": str(topic.id)}})
    return success_response(TopicRead.model_validate(topic), message="Topic created successfully")


@router.get("/")
async def list_topics(db: Session = Depends(get_db)):
    topics = (
        db.query(Topic)
        .options(selectinload(Topic.questions))
        .order_by(Topic.created_at.desc())
        .all()
    )
    return success_response([TopicDetail.model_validate(t) for t in topics])


@router.get("/{topic_id}")
async def get_topic(topic_id: UUID, db: Session = Depends(get_db)):
    return success_response(TopicDetail.model_validate(_get_topic(db, topic_id)))


@router.put("/{topic_id}")
async def update_topic(topic_id: UUID, topic_data: TopicUpdate, db: Session = Depends(get_db)):
    topic = _get_topic(db, topic_id)

    changes = topic_data.model_dump(exclude_unset=True)
    if "name" in changes and not (changes["name"] or "").strip():
        raise HTTPException(status_code=400, detail="Topic name is required")
    for field, value in changes.items():
        if value is not None:
            setattr(topic, field, value)

    db.commit()
    db.refresh(topic)

    logger.info(f"Topic updated: {topic_id}")
    return success_response(TopicRead.model_validate(topic), message="Topic updated successfully")


@router.delete("/{topic_id}")
async def delete_topic(topic_id: UUID, db: Session = Depends(get_db)):
    topic = _get_topic(db, topic_id)
    delete_instance(db, topic, "topic")

    logger.info(f"Topic deleted: {topic_id}")
    return success_response(message="Topic deleted successfully")

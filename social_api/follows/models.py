follows_sql = """
CREATE TABLE follows (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),

    follower_id  UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    following_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,

    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),

    -- Prevent A -> B from being stored twice
    CONSTRAINT unique_follow_pair UNIQUE (follower_id, following_id),

    -- Prevent a user from following themselves
    CONSTRAINT prevent_self_follow CHECK (follower_id <> following_id)
);
"""

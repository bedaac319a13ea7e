"""
Friends app.

Friend requests between users and the resulting friendships. The number of
pending requests a user has received feeds the client's badge total.

Usage:
    from friends.services import FriendService

    result = FriendService.send_request(sender=user, receiver_id=2)
    FriendService.accept(request_id=result.data.id, user=receiver)
"""

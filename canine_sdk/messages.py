"""
Builders for the chain messages the client emits.

Field names follow the chain's message definitions.
"""

from canine_sdk.models import ChainMessage

MSG_POST_FILE = "/canine_chain.filetree.MsgPostFile"
MSG_DELETE_FILE = "/canine_chain.filetree.MsgDeleteFile"
MSG_MAKE_ROOT = "/canine_chain.filetree.MsgMakeRootV2"
MSG_SIGN_CONTRACT = "/canine_chain.storage.MsgSignContract"
MSG_CANCEL_CONTRACT = "/canine_chain.storage.MsgCancelContract"


def msg_post_file(
    creator: str,
    account: str,
    hash_parent: str,
    hash_child: str,
    contents: str,
    viewers: str,
    editors: str,
    tracking_number: str,
) -> ChainMessage:
    return ChainMessage(
        type_url=MSG_POST_FILE,
        value={
            "creator": creator,
            "account": account,
            "hashParent": hash_parent,
            "hashChild": hash_child,
            "contents": contents,
            "viewers": viewers,
            "editors": editors,
            "trackingNumber": tracking_number,
        },
    )


def msg_delete_file(creator: str, hash_path: str, account: str) -> ChainMessage:
    return ChainMessage(
        type_url=MSG_DELETE_FILE,
        value={"creator": creator, "hashPath": hash_path, "account": account},
    )


def msg_make_root(
    creator: str, editors: str, viewers: str, tracking_number: str
) -> ChainMessage:
    return ChainMessage(
        type_url=MSG_MAKE_ROOT,
        value={
            "creator": creator,
            "editors": editors,
            "viewers": viewers,
            "trackingNumber": tracking_number,
        },
    )


def msg_sign_contract(creator: str, cid: str, pay_once: bool = False) -> ChainMessage:
    return ChainMessage(
        type_url=MSG_SIGN_CONTRACT,
        value={"creator": creator, "cid": cid, "payOnce": pay_once},
    )


def msg_cancel_contract(creator: str, cid: str) -> ChainMessage:
    return ChainMessage(
        type_url=MSG_CANCEL_CONTRACT, value={"creator": creator, "cid": cid}
    )
